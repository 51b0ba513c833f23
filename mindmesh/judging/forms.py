"""Forms for the judging blueprint."""

from wtforms import BooleanField, FloatField, IntegerField, StringField
from wtforms.validators import DataRequired, Email, InputRequired, Length, NumberRange
from wtforms.validators import Optional as OptionalValidator

from mindmesh.core.forms import JSONForm, StringListField


class JudgeForm(JSONForm):
    """Form for inviting a judge."""

    eventId = StringField("Event", validators=[DataRequired()])
    name = StringField("Name", validators=[DataRequired(), Length(max=100)])
    email = StringField("Email", validators=[DataRequired(), Email()])
    bio = StringField("Bio", validators=[OptionalValidator(), Length(max=2000)])
    organization = StringField("Organization", validators=[OptionalValidator()])
    designation = StringField("Designation", validators=[OptionalValidator()])
    isLead = BooleanField("Lead Judge")
    assignedTeams = StringListField("Assigned Teams")
    order = IntegerField("Order", validators=[OptionalValidator()])


class JudgeUpdateForm(JSONForm):
    """Form for editing a judge."""

    name = StringField("Name", validators=[OptionalValidator(), Length(max=100)])
    email = StringField("Email", validators=[OptionalValidator(), Email()])
    bio = StringField("Bio", validators=[OptionalValidator(), Length(max=2000)])
    organization = StringField("Organization", validators=[OptionalValidator()])
    designation = StringField("Designation", validators=[OptionalValidator()])
    isLead = BooleanField("Lead Judge")
    assignedTeams = StringListField("Assigned Teams")
    order = IntegerField("Order", validators=[OptionalValidator()])


class InviteResponseForm(JSONForm):
    """Form for accepting or declining a judge invitation."""

    inviteCode = StringField("Invite Code", validators=[DataRequired(), Length(max=20)])


class CriteriaForm(JSONForm):
    """Form for adding a scoring criterion."""

    eventId = StringField("Event", validators=[DataRequired()])
    name = StringField("Name", validators=[DataRequired(), Length(max=100)])
    description = StringField("Description", validators=[OptionalValidator()])
    maxScore = FloatField("Max Score", validators=[InputRequired()])
    weight = FloatField("Weight", validators=[InputRequired(), NumberRange(min=0, max=1)])
    order = IntegerField("Order", validators=[OptionalValidator()])


class CriteriaUpdateForm(JSONForm):
    """Form for editing a scoring criterion."""

    name = StringField("Name", validators=[OptionalValidator(), Length(max=100)])
    description = StringField("Description", validators=[OptionalValidator()])
    maxScore = FloatField("Max Score", validators=[OptionalValidator()])
    weight = FloatField(
        "Weight", validators=[OptionalValidator(), NumberRange(min=0, max=1)]
    )
    order = IntegerField("Order", validators=[OptionalValidator()])


class ScoreForm(JSONForm):
    """Form for a single score."""

    eventId = StringField("Event", validators=[OptionalValidator()])
    judgeId = StringField("Judge", validators=[DataRequired()])
    submissionId = StringField("Submission", validators=[DataRequired()])
    criteriaId = StringField("Criteria", validators=[DataRequired()])
    score = FloatField("Score", validators=[InputRequired()])
    comment = StringField("Comment", validators=[OptionalValidator(), Length(max=2000)])


class PublishResultsForm(JSONForm):
    """Form for publishing an event's results."""

    eventId = StringField("Event", validators=[DataRequired()])
