"""Global constants for the mindmesh application."""

# Database-related constants
ID_SEPARATOR = "_"  # joins generated ids into composite document keys
FIRESTORE_BATCH_LIMIT = 400
TRANSACTION_MAX_ATTEMPTS = 5

# Store retry policy (seconds)
STORE_RETRY_INITIAL = 0.2
STORE_RETRY_MAXIMUM = 2.0
STORE_RETRY_MULTIPLIER = 2.0
STORE_RETRY_DEADLINE = 10.0

# Collection names
USERS_COLLECTION = "users"
COUPONS_COLLECTION = "coupons"
COUPON_USAGE_COLLECTION = "coupon_usage"
TEAMS_COLLECTION = "hackathon_teams"
MEMBERS_COLLECTION = "team_members"
INVITE_CODES_COLLECTION = "invite_codes"
JUDGES_COLLECTION = "judges"
CRITERIA_COLLECTION = "judging_criteria"
SCORES_COLLECTION = "judge_scores"
SUBMISSIONS_COLLECTION = "submissions"
RESULTS_COLLECTION = "event_results"
PROBLEMS_COLLECTION = "problem_statements"

# Invite codes
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_MIN_LENGTH = 6
CODE_MAX_LENGTH = 10
TEAM_CODE_LENGTH = 6
JUDGE_CODE_LENGTH = 8
CODE_MAX_ATTEMPTS = 5

# Coupons
COUPON_TYPES = ("percentage", "fixed")
COUPON_SCOPES = ("global", "event")
COUPON_EDITABLE_FIELDS = (
    "isActive",
    "description",
    "validFrom",
    "validUntil",
    "usageLimit",
    "perUserLimit",
)

# Teams
TEAM_DEFAULT_MAX_SIZE = 5
TEAM_MAX_SIZE_LIMIT = 10
TEAM_STATUSES = ("forming", "locked", "submitted", "disqualified", "winner")
TEAM_TERMINAL_STATUSES = ("disqualified", "winner")
TEAM_TRANSITIONS = {
    "forming": ("locked", "disqualified"),
    "locked": ("forming", "submitted", "disqualified"),
    "submitted": ("winner",),
    "disqualified": (),
    "winner": (),
}
TEAM_ADMIN_ONLY_STATUSES = ("disqualified", "winner")
TEAM_EDITABLE_FIELDS = ("teamName", "description", "problemStatementId")

# Judging
JUDGE_EDITABLE_FIELDS = (
    "name",
    "email",
    "bio",
    "organization",
    "designation",
    "isLead",
    "assignedTeams",
    "order",
)
CRITERIA_EDITABLE_FIELDS = ("name", "description", "maxScore", "weight", "order")
WEIGHT_TOLERANCE = 1e-6
TOTAL_SCORE_PRECISION = 4
PUBLISHED_RESULTS_LIMIT = 20

# Problem statements
PROBLEM_DIFFICULTIES = ("beginner", "intermediate", "advanced")
PROBLEM_EDITABLE_FIELDS = (
    "title",
    "description",
    "category",
    "difficulty",
    "expectedOutcome",
    "resources",
    "sponsorName",
    "maxTeams",
    "isVisible",
    "order",
)

# Submissions
SUBMISSION_STATUSES = ("draft", "submitted", "under_review", "accepted", "rejected")
SUBMISSION_TRANSITIONS = {
    "draft": ("submitted",),
    "submitted": ("under_review",),
    "under_review": ("accepted", "rejected"),
    "accepted": (),
    "rejected": (),
}
SUBMISSION_LOCKED_STATUSES = ("under_review", "accepted", "rejected")
SUBMISSION_SCOREABLE_STATUSES = ("submitted", "under_review", "accepted")
SUBMISSION_EDITABLE_FIELDS = (
    "projectTitle",
    "projectDescription",
    "problemStatementId",
    "techStack",
    "repoUrl",
    "demoUrl",
    "videoUrl",
    "presentationUrl",
    "screenshots",
    "additionalNotes",
)
