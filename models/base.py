from tortoise import fields, models


class TimestampMixin:
    """
    Mixin to add created_at and updated_at fields to models
    """

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)


class BaseModel(models.Model, TimestampMixin):
    """
    Base model with ID and timestamps for all models to inherit from
    """

    id = fields.IntField(pk=True)

    class Meta:
        abstract = True
