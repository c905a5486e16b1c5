from models.db_storage import DBStorage
from models.user import User, UserRole
from models.event import Event
from models.participant import Participant, ParticipantStatus
from models.checkin import CheckIn, CheckInMethod

# Process-wide storage; the application factory calls storage.configure()
storage = DBStorage()
