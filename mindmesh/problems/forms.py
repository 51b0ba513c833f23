"""Forms for the problem statements blueprint."""

from wtforms import BooleanField, IntegerField, StringField
from wtforms.validators import AnyOf, DataRequired, Length, NumberRange
from wtforms.validators import Optional as OptionalValidator

from mindmesh.core.constants import PROBLEM_DIFFICULTIES
from mindmesh.core.forms import JSONForm, StringListField


class ProblemStatementForm(JSONForm):
    """Form for adding a problem statement."""

    eventId = StringField("Event", validators=[DataRequired()])
    title = StringField("Title", validators=[DataRequired(), Length(max=200)])
    description = StringField(
        "Description", validators=[DataRequired(), Length(max=10000)]
    )
    category = StringField("Category", validators=[OptionalValidator(), Length(max=100)])
    difficulty = StringField(
        "Difficulty", validators=[OptionalValidator(), AnyOf(PROBLEM_DIFFICULTIES)]
    )
    expectedOutcome = StringField(
        "Expected Outcome", validators=[OptionalValidator(), Length(max=5000)]
    )
    resources = StringListField("Resources")
    sponsorName = StringField("Sponsor", validators=[OptionalValidator()])
    maxTeams = IntegerField("Max Teams", validators=[OptionalValidator(), NumberRange(min=0)])
    isVisible = BooleanField("Visible")
    order = IntegerField("Order", validators=[OptionalValidator()])


class ProblemStatementUpdateForm(JSONForm):
    """Form for editing a problem statement."""

    title = StringField("Title", validators=[OptionalValidator(), Length(max=200)])
    description = StringField(
        "Description", validators=[OptionalValidator(), Length(max=10000)]
    )
    category = StringField("Category", validators=[OptionalValidator(), Length(max=100)])
    difficulty = StringField(
        "Difficulty", validators=[OptionalValidator(), AnyOf(PROBLEM_DIFFICULTIES)]
    )
    expectedOutcome = StringField(
        "Expected Outcome", validators=[OptionalValidator(), Length(max=5000)]
    )
    resources = StringListField("Resources")
    sponsorName = StringField("Sponsor", validators=[OptionalValidator()])
    maxTeams = IntegerField("Max Teams", validators=[OptionalValidator(), NumberRange(min=0)])
    isVisible = BooleanField("Visible")
    order = IntegerField("Order", validators=[OptionalValidator()])
