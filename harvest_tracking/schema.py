"""schema.py: Marshmallow schemas for serializing SQLAlchemy models and validating request payloads."""

from marshmallow import (
    Schema,
    EXCLUDE,
    ValidationError,
    fields,
    validate,
    validates_schema
    )
from marshmallow_sqlalchemy import SQLAlchemyAutoSchema

from . import vocabulary as vb
from .model import (
    Category,
    Description,
    Harvest,
    StatusEnum,
    UnitEnum
    )

object_id = validate.Regexp(vb.OBJECT_ID_REGEX, error="Invalid ObjectId format")


class TrimmedString(fields.String):
    """String field stripped of surrounding whitespace before validation"""
    def _deserialize(self, value, attr, data, **kwargs):
        return super()._deserialize(value, attr, data, **kwargs).strip()


class MetadataValueSchema(Schema):
    """
    Metadata entry, the value is always carried as a string
    """
    type = fields.String(required=True, validate=validate.OneOf(vb.METADATA_TYPES))
    value = fields.String(required=True)


def metadata_field(**kwargs):
    return fields.Dict(keys=fields.String(), values=fields.Nested(MetadataValueSchema), **kwargs)


# Serialization

class BaseSchema(SQLAlchemyAutoSchema):
    """
    Base schema, columns shared by every table are exposed under their public names.
    """
    id = fields.String(dump_only=True)
    status = fields.Enum(StatusEnum, by_value=True)
    creation = fields.DateTime(data_key="createdAt", dump_only=True)
    modification = fields.DateTime(data_key="updatedAt", dump_only=True)
    extra_metadata = fields.Dict(data_key="metadata")

    def __init__(self, *args, **kwargs):
        self.context = kwargs.pop("context", {})
        super().__init__(*args, **kwargs)


class CategorySchema(BaseSchema):
    """
    CategorySchema
    """
    class Meta:
        """
        CategorySchema Meta
        """
        model = Category


class DescriptionSchema(BaseSchema):
    """
    DescriptionSchema, references are left as ids
    """
    class Meta:
        """
        DescriptionSchema Meta
        """
        model = Description

    category_id = fields.String(data_key="category")
    parent_id = fields.String(data_key="parentId", allow_none=True)
    created_by = fields.String(data_key="createdBy")


class PopulatedDescriptionSchema(DescriptionSchema):
    """
    DescriptionSchema with the category and the direct children resolved
    """
    class Meta(DescriptionSchema.Meta):
        """
        PopulatedDescriptionSchema Meta
        """
        exclude = ("category_id",)

    category = fields.Nested(CategorySchema)
    children = fields.Nested(DescriptionSchema, many=True)


class HarvestSchema(BaseSchema):
    """
    HarvestSchema, the description is left as an id
    """
    class Meta:
        """
        HarvestSchema Meta
        """
        model = Harvest

    description_id = fields.String(data_key="description")
    unit = fields.Enum(UnitEnum, by_value=True)
    harvest_date = fields.DateTime(data_key="harvestDate")


class PopulatedHarvestSchema(HarvestSchema):
    """
    HarvestSchema with the description and its category resolved
    """
    class Meta(HarvestSchema.Meta):
        """
        PopulatedHarvestSchema Meta
        """
        exclude = ("description_id",)

    description = fields.Nested(PopulatedDescriptionSchema, exclude=("children",))


SCHEMAS = {
    Category: (CategorySchema, CategorySchema),
    Description: (DescriptionSchema, PopulatedDescriptionSchema),
    Harvest: (HarvestSchema, PopulatedHarvestSchema)
}


def serialize(obj, include_relationships=False, context=None):
    """
    Serialize a SQLAlchemy model instance or list of instances using the appropriate Marshmallow schema.

    Args:
        obj: A SQLAlchemy model instance or a list of instances.
        include_relationships: Whether to populate the referenced entities.
        context: Optional context dictionary for the schema.

    Returns:
        dict or list of dicts: Serialized representation.
    """
    many = isinstance(obj, list)
    if many:
        if not obj:
            return []
        model_cls = type(obj[0])
    else:
        model_cls = type(obj)

    if model_cls not in SCHEMAS:
        raise ValueError(f"No schema found for type {model_cls}")
    flat, populated = SCHEMAS[model_cls]
    schema_cls = populated if include_relationships else flat
    return schema_cls(many=many, context=context or {}).dump(obj)


# Request validation

class RequestSchema(Schema):
    """Unknown keys are dropped from request payloads"""
    class Meta:
        unknown = EXCLUDE


class CategoryRequestSchema(RequestSchema):
    name = TrimmedString(required=True, validate=validate.Length(min=1, max=100))
    description = TrimmedString(validate=validate.Length(max=500))
    metadata = metadata_field(attribute="extra_metadata")
    status = fields.Enum(StatusEnum, by_value=True, load_default=StatusEnum.ACTIVE)
    order = fields.Integer(validate=validate.Range(min=0))


class ReorderCategoriesSchema(RequestSchema):
    ordered_ids = fields.List(
        fields.String(validate=object_id),
        data_key="orderedIds",
        required=True,
        validate=validate.Length(min=1)
    )


class DescriptionRequestSchema(RequestSchema):
    """
    New descriptions are always created active, a status in the payload is dropped
    """
    description = TrimmedString(required=True, validate=validate.Length(min=1, max=1000))
    category_id = fields.String(data_key="categoryId", required=True, validate=object_id)
    parent_id = fields.String(data_key="parentId", validate=object_id)
    created_by = fields.String(data_key="userId", required=True, validate=validate.Length(min=1))
    metadata = metadata_field(attribute="extra_metadata")


class DescriptionUpdateSchema(RequestSchema):
    """
    Partial update, only the provided keys are loaded
    """
    id = fields.String(validate=object_id, load_only=True)
    description = TrimmedString(validate=validate.Length(min=1, max=1000))
    category_id = fields.String(data_key="categoryId", validate=object_id)
    parent_id = fields.String(data_key="parentId", validate=object_id)
    metadata = metadata_field(attribute="extra_metadata")
    status = fields.Enum(StatusEnum, by_value=True)


class DescriptionQuerySchema(RequestSchema):
    category_id = fields.String(data_key="category", validate=object_id)
    parent_id = fields.String(data_key="parent", validate=object_id)


class BatchOperationDataSchema(DescriptionUpdateSchema):
    created_by = fields.String(data_key="userId", validate=validate.Length(min=1))

    class Meta(RequestSchema.Meta):
        exclude = ("id",)


class BatchOperationSchema(RequestSchema):
    type = fields.String(required=True, validate=validate.OneOf(vb.OPERATION_TYPES))
    id = fields.String(validate=object_id)
    data = fields.Nested(BatchOperationDataSchema)


class BatchRequestSchema(RequestSchema):
    """
    Shape of a batch request, checked before any transaction is opened:
    create operations carry data and no id, update and delete operations carry an id.
    """
    operations = fields.List(fields.Nested(BatchOperationSchema), required=True)

    def __init__(self, *args, max_operations=vb.BATCH_MAX_OPERATIONS, **kwargs):
        self.max_operations = max_operations
        super().__init__(*args, **kwargs)

    @validates_schema
    def validate_operations(self, data, **kwargs):
        operations = data.get(vb.OPERATIONS, [])
        if not 1 <= len(operations) <= self.max_operations:
            raise ValidationError(
                f"Between 1 and {self.max_operations} operations are accepted.",
                field_name=vb.OPERATIONS
            )
        for operation in operations:
            if operation[vb.OPERATION_TYPE] == vb.CREATE:
                well_formed = vb.OPERATION_DATA in operation and vb.OPERATION_ID not in operation
            else:
                well_formed = vb.OPERATION_ID in operation
            if not well_formed:
                raise ValidationError(
                    "Create operations require data but no ID, other operations require an ID",
                    field_name=vb.OPERATIONS
                )


class HarvestRequestSchema(RequestSchema):
    description_id = fields.String(data_key="descriptionId", required=True, validate=object_id)
    amount = fields.Float(required=True, validate=validate.Range(min=0))
    unit = fields.Enum(UnitEnum, by_value=True, required=True)
    harvest_date = fields.Date(data_key="harvestDate", format=vb.DATE_FMT)
    metadata = metadata_field(attribute="extra_metadata")


class HarvestUpdateSchema(RequestSchema):
    description_id = fields.String(data_key="descriptionId", validate=object_id)
    amount = fields.Float(validate=validate.Range(min=0))
    unit = fields.Enum(UnitEnum, by_value=True)
    harvest_date = fields.Date(data_key="harvestDate", format=vb.DATE_FMT)
    metadata = metadata_field(attribute="extra_metadata")


class DateRangeSchema(RequestSchema):
    start_date = fields.Date(data_key="startDate", format=vb.DATE_FMT)
    end_date = fields.Date(data_key="endDate", format=vb.DATE_FMT)

    @validates_schema
    def validate_range(self, data, **kwargs):
        if "start_date" in data and "end_date" in data and data["start_date"] > data["end_date"]:
            raise ValidationError("startDate must not be after endDate", field_name="startDate")
