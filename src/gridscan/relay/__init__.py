"""Question relay: spreadsheet polling and WebSocket broadcast."""

from .errors import RelayError, SheetError
from .questions import Question, QuestionStatus, QuestionStore
from .sheet import SheetClient, load_credentials
from .hub import ConnectionHub
from .server import RelayServer
from .activity import RelayActivity

__all__ = [
    "RelayError",
    "SheetError",
    "Question",
    "QuestionStatus",
    "QuestionStore",
    "SheetClient",
    "load_credentials",
    "ConnectionHub",
    "RelayServer",
    "RelayActivity",
]
