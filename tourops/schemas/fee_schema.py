from marshmallow_sqlalchemy import SQLAlchemyAutoSchema, auto_field
from tourops.models.agent import AgentCreditTerms
from tourops.models.job_fees import DriverTripFee, RepFee, SupplierCost


class DriverTripFeeSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = DriverTripFee
        include_fk = True
    id = auto_field(dump_only=True)
    amount = auto_field(as_string=True)
    created_at = auto_field(dump_only=True)


class RepFeeSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = RepFee
        include_fk = True
    id = auto_field(dump_only=True)
    amount = auto_field(as_string=True)
    created_at = auto_field(dump_only=True)


class SupplierCostSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = SupplierCost
        include_fk = True
    id = auto_field(dump_only=True)
    amount = auto_field(as_string=True)
    created_at = auto_field(dump_only=True)


class AgentCreditTermsSchema(SQLAlchemyAutoSchema):
    class Meta:
        model = AgentCreditTerms
        include_fk = True
        exclude = ('version', 'exposure_checked_at')
    id = auto_field(dump_only=True)
    credit_limit = auto_field(as_string=True)
    updated_at = auto_field(dump_only=True)
