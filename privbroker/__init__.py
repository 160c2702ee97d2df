from .command import Command
from .credential import Credential
from .gate import CredentialGate, CANCELLED, GateError
from .broker import ElevationBroker, getBroker
from .results import Ok, Failed, FailReason
