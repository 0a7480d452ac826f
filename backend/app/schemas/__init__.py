from .bootstrap import BootstrapOut
from .chat import ChatCreate, ChatOut, ChatPatch
from .generation import CompletionIn, CompletionOut, Turn
from .message import MessageIn, MessageOut, Role
from .ws import ActionType, ClientAction
