"""Forms for the teams blueprint."""

from wtforms import IntegerField, StringField
from wtforms.validators import AnyOf, DataRequired, Length, NumberRange
from wtforms.validators import Optional as OptionalValidator

from mindmesh.core.constants import TEAM_STATUSES
from mindmesh.core.forms import JSONForm


class CreateTeamForm(JSONForm):
    """Form for creating a team."""

    eventId = StringField("Event", validators=[DataRequired()])
    teamName = StringField("Team Name", validators=[DataRequired(), Length(max=100)])
    description = StringField(
        "Description", validators=[OptionalValidator(), Length(max=1000)]
    )
    maxSize = IntegerField("Max Size", validators=[OptionalValidator(), NumberRange(min=1)])
    problemStatementId = StringField("Problem Statement", validators=[OptionalValidator()])


class JoinTeamForm(JSONForm):
    """Form for joining a team by invite code."""

    inviteCode = StringField("Invite Code", validators=[DataRequired(), Length(max=20)])


class UpdateTeamForm(JSONForm):
    """Form for editing a team."""

    teamName = StringField("Team Name", validators=[OptionalValidator(), Length(max=100)])
    description = StringField(
        "Description", validators=[OptionalValidator(), Length(max=1000)]
    )
    problemStatementId = StringField("Problem Statement", validators=[OptionalValidator()])


class TeamStatusForm(JSONForm):
    """Form for a team status transition."""

    status = StringField("Status", validators=[DataRequired(), AnyOf(TEAM_STATUSES)])
