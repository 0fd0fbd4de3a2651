# Importing every model here keeps string relationships ("Item", "User")
# resolvable whichever model module is imported first.
from fleamarket.app.models.blacklisted_token import BlacklistedToken  # noqa: F401
from fleamarket.app.models.item import Item  # noqa: F401
from fleamarket.app.models.user import Role, User  # noqa: F401
