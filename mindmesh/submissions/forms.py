"""Forms for the submissions blueprint."""

from wtforms import BooleanField, StringField
from wtforms.validators import URL, AnyOf, DataRequired, Length
from wtforms.validators import Optional as OptionalValidator

from mindmesh.core.constants import SUBMISSION_STATUSES
from mindmesh.core.forms import JSONForm, StringListField


class SubmissionDetailsForm(JSONForm):
    """Project details shared by create and edit."""

    projectTitle = StringField("Title", validators=[OptionalValidator(), Length(max=200)])
    projectDescription = StringField(
        "Description", validators=[OptionalValidator(), Length(max=10000)]
    )
    problemStatementId = StringField("Problem Statement", validators=[OptionalValidator()])
    techStack = StringListField("Tech Stack")
    repoUrl = StringField("Repository", validators=[OptionalValidator(), URL()])
    demoUrl = StringField("Demo", validators=[OptionalValidator(), URL()])
    videoUrl = StringField("Video", validators=[OptionalValidator(), URL()])
    presentationUrl = StringField("Presentation", validators=[OptionalValidator(), URL()])
    screenshots = StringListField("Screenshots")
    additionalNotes = StringField(
        "Notes", validators=[OptionalValidator(), Length(max=5000)]
    )


class CreateSubmissionForm(SubmissionDetailsForm):
    """Form for creating a submission."""

    eventId = StringField("Event", validators=[DataRequired()])
    teamId = StringField("Team", validators=[OptionalValidator()])
    projectTitle = StringField("Title", validators=[DataRequired(), Length(max=200)])
    projectDescription = StringField(
        "Description", validators=[DataRequired(), Length(max=10000)]
    )
    asDraft = BooleanField("Save as Draft")


class SubmissionStatusForm(JSONForm):
    """Form for a submission status change."""

    status = StringField("Status", validators=[DataRequired(), AnyOf(SUBMISSION_STATUSES)])
    reviewNotes = StringField("Review Notes", validators=[OptionalValidator(), Length(max=5000)])
