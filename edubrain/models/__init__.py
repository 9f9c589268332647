# Import all models to ensure they're registered with SQLAlchemy
from edubrain.database import Base
from edubrain.models.users import User, UserRole
from edubrain.models.finance import StudentFee, Payment, PaymentStatus
from edubrain.models.notifications import Reminder, ReminderStatus
