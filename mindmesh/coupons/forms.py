"""Forms for the coupon blueprint."""

from wtforms import BooleanField, FloatField, IntegerField, SelectField, StringField
from wtforms.validators import AnyOf, DataRequired, InputRequired, Length, NumberRange
from wtforms.validators import Optional as OptionalValidator
from wtforms.validators import Regexp, ValidationError

from mindmesh.core.constants import COUPON_SCOPES, COUPON_TYPES
from mindmesh.core.forms import IsoDateTimeField, JSONForm


class CouponForm(JSONForm):
    """Form for creating a coupon."""

    code = StringField(
        "Code",
        validators=[
            DataRequired(),
            Length(min=3, max=32),
            Regexp(r"^[A-Za-z0-9_-]+$", message="Use letters, digits, - or _ only."),
        ],
    )
    description = StringField("Description", validators=[OptionalValidator()])
    type = SelectField(
        "Type",
        choices=[(t, t.title()) for t in COUPON_TYPES],
        validators=[DataRequired()],
    )
    value = FloatField("Value", validators=[InputRequired()])
    minPurchase = FloatField(
        "Minimum Purchase", validators=[OptionalValidator(), NumberRange(min=0)]
    )
    maxDiscount = FloatField(
        "Maximum Discount", validators=[OptionalValidator(), NumberRange(min=0)]
    )
    scope = StringField(
        "Scope", validators=[OptionalValidator(), AnyOf(COUPON_SCOPES)]
    )
    eventId = StringField("Event", validators=[OptionalValidator()])
    eventName = StringField("Event Name", validators=[OptionalValidator()])
    usageLimit = IntegerField(
        "Usage Limit", validators=[OptionalValidator(), NumberRange(min=0)]
    )
    perUserLimit = IntegerField(
        "Per User Limit", validators=[OptionalValidator(), NumberRange(min=0)]
    )
    validFrom = IsoDateTimeField("Valid From", validators=[DataRequired()])
    validUntil = IsoDateTimeField("Valid Until", validators=[DataRequired()])
    isActive = BooleanField("Active", default=True)

    def validate_value(self, field):
        """A coupon must take something off."""
        if field.data is not None and field.data <= 0:
            raise ValidationError("Value must be greater than 0.")

    def validate_validUntil(self, field):
        """The window cannot end before it starts."""
        if field.data and self.validFrom.data and field.data < self.validFrom.data:
            raise ValidationError("validUntil must not be before validFrom.")


class CouponUpdateForm(JSONForm):
    """Form for the editable subset of a coupon."""

    isActive = BooleanField("Active")
    description = StringField("Description", validators=[OptionalValidator()])
    validFrom = IsoDateTimeField("Valid From", validators=[OptionalValidator()])
    validUntil = IsoDateTimeField("Valid Until", validators=[OptionalValidator()])
    usageLimit = IntegerField(
        "Usage Limit", validators=[OptionalValidator(), NumberRange(min=0)]
    )
    perUserLimit = IntegerField(
        "Per User Limit", validators=[OptionalValidator(), NumberRange(min=0)]
    )


class ValidateCouponForm(JSONForm):
    """Query parameters of the validation endpoint."""

    code = StringField("Code", validators=[DataRequired()])
    eventId = StringField("Event", validators=[OptionalValidator()])
    userId = StringField("User", validators=[OptionalValidator()])
    price = FloatField("Price", validators=[OptionalValidator(), NumberRange(min=0)])


class ApplyCouponForm(JSONForm):
    """Form for redeeming a coupon."""

    couponId = StringField("Coupon", validators=[OptionalValidator()])
    couponCode = StringField("Code", validators=[OptionalValidator()])
    eventId = StringField("Event", validators=[DataRequired()])
    originalPrice = FloatField(
        "Original Price", validators=[InputRequired(), NumberRange(min=0)]
    )
    discountAmount = FloatField("Discount", validators=[OptionalValidator()])
    finalPrice = FloatField("Final Price", validators=[OptionalValidator()])

    def validate(self, extra_validators=None):
        """Either the coupon id or its code must be given."""
        if not super().validate(extra_validators=extra_validators):
            return False
        if not (self.couponId.data or self.couponCode.data):
            self.couponId.errors.append("couponId or couponCode is required.")
            return False
        return True
