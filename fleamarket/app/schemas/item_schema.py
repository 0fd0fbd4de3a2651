"""
schemas/item_schema.py: Marshmallow schemas for item listing endpoints.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate

_MAX_PRICE = 9_999_999


class CreateItemSchema(Schema):
    """POST /items"""

    name = fields.Str(required=True, validate=validate.Length(min=2, max=100))
    price = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, max=_MAX_PRICE),
    )
    description = fields.Str(
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=1000),
    )


class UpdateItemSchema(Schema):
    """
    PUT /items/<id>

    Every field optional; an empty body is rejected by the service
    (NO_FIELDS_TO_UPDATE) rather than here.
    """

    name = fields.Str(validate=validate.Length(min=2, max=100))
    price = fields.Int(strict=True, validate=validate.Range(min=1, max=_MAX_PRICE))
    description = fields.Str(allow_none=True, validate=validate.Length(max=1000))
    sold_out = fields.Bool(data_key="soldOut")
