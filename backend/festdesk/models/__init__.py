from .registrations import TierPassRegistration, TierPassMember
from .events import Event, EventRegistration, EventRegistrationMember
from .communications import EmailTemplate, EmailLog
from .auth import AdminUser, AdminSession

__all__ = [
    'TierPassRegistration', 'TierPassMember',
    'Event', 'EventRegistration', 'EventRegistrationMember',
    'EmailTemplate', 'EmailLog',
    'AdminUser', 'AdminSession',
]
