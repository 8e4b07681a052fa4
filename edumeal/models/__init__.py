# edumeal/models/__init__.py
# Import all models here so SQLAlchemy registers them into Base.metadata.

from edumeal.models.student import Student  # noqa: F401
from edumeal.models.subscription import Subscription  # noqa: F401
from edumeal.models.ticket import Ticket  # noqa: F401
from edumeal.models.log import Log  # noqa: F401
from edumeal.models.eligibility_report import EligibilityReport  # noqa: F401
from edumeal.models.integration import Integration  # noqa: F401
