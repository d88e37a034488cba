from app.models.rate_limit import RateLimit
from app.models.submission import Submission, SubmissionStatus

__all__ = ["RateLimit", "Submission", "SubmissionStatus"]
