## ================================================================================
## gate.py is a part of privbroker, which is distributed under the
## following license:
##
## Copyright (C) 2018 Jonas Møller (no) <jonasmo441@gmail.com>
## All rights reserved.
##
## Redistribution and use in source and binary forms, with or without
## modification, are permitted provided that the following conditions are met:
## 
## 1. Redistributions of source code must retain the above copyright notice, this
##    list of conditions and the following disclaimer.
## 2. Redistributions in binary form must reproduce the above copyright notice,
##    this list of conditions and the following disclaimer in the documentation
##    and/or other materials provided with the distribution.
## 
## THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND
## ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
## WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE
## DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE
## FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
## DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR
## SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
## CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY,
## OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE
## OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
## SOFTWARE.
## ================================================================================

"""
The credential gate sits between the broker, which needs a password
right now, and whatever front-end is able to ask the user for one.

The broker calls request() from its worker thread and is suspended
there until the front-end calls supplyCredential() or cancel(). Only
the requesting thread waits, the rest of the program keeps going.

Concurrent requests queue up: one prompt is outstanding at any time,
the next request starts prompting once the previous one is resolved
or cancelled.
"""

import logging
import threading
from enum import Enum
from typing import Callable, Optional, Union

from .command import Command
from .credential import Credential
from .privesc import PrivbrokerException

log = logging.getLogger(__name__)

class GateError(PrivbrokerException):
    pass

class GateState(Enum):
    IDLE = "idle"
    PROMPTING = "prompting"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"

class Cancelled:
    def __repr__(self):
        return "CANCELLED"
    __str__ = __repr__

CANCELLED = Cancelled()
class CredentialGate:
    def __init__(self, on_prompt: Optional[Callable[[Optional[Command]], None]] = None):
        self.on_prompt = on_prompt
        ## Held for the whole life of a prompt, queues up other requests
        self._serial = threading.Lock()
        self._cond = threading.Condition()
        self._state = GateState.IDLE
        self._credential = None
        self._command = None
        self._abort = None

    @property
    def state(self) -> GateState:
        with self._cond:
            return self._state

    @property
    def pending(self) -> Optional[Command]:
        """
        The command the outstanding prompt is for, if any.
        """
        with self._cond:
            if self._state == GateState.PROMPTING:
                return self._command
            return None

    def request(self,
                command: Optional[Command] = None,
                abort: Optional[threading.Event] = None) -> Union[Credential, Cancelled]:
        """
        Prompt for a credential and wait for the answer.

        `abort` identifies the request for cancel(). A request whose abort
        event is already set by the time it reaches the front of the queue
        returns CANCELLED without prompting.
        """
        with self._serial:
            with self._cond:
                if abort is not None and abort.is_set():
                    log.debug("Request for %s was aborted while queued", command)
                    return CANCELLED
                self._state = GateState.PROMPTING
                self._credential = None
                self._command = command
                self._abort = abort
            log.debug("Prompting for a credential for %s", command)
            try:
                if self.on_prompt:
                    self.on_prompt(command)
            except BaseException:
                self._reset()
                raise
            with self._cond:
                while self._state == GateState.PROMPTING:
                    self._cond.wait()
                if self._state == GateState.RESOLVED:
                    ## Handed over, the caller wipes it from now on
                    ret, self._credential = self._credential, None
                else:
                    log.debug("Prompt for %s was cancelled", command)
                    ret = CANCELLED
            self._reset()
            return ret

    def _reset(self):
        with self._cond:
            if self._credential is not None:
                self._credential.wipe()
            self._state = GateState.IDLE
            self._credential = None
            self._command = None
            self._abort = None

    def supplyCredential(self, secret) -> None:
        """
        Answer the outstanding prompt. A bytearray or Credential is taken
        over: it is wiped here if there is no prompt to answer.
        """
        cred = secret if isinstance(secret, Credential) else Credential(secret)
        with self._cond:
            if self._state != GateState.PROMPTING:
                cred.wipe()
                raise GateError("No credential request is pending")
            self._credential = cred
            self._state = GateState.RESOLVED
            self._cond.notify_all()

    def cancel(self, abort: Optional[threading.Event] = None) -> bool:
        """
        Cancel the outstanding prompt. With `abort`, only cancel it if it
        belongs to the request that was made with that event.
        Returns False if there was nothing to cancel.
        """
        with self._cond:
            if self._state != GateState.PROMPTING:
                return False
            if abort is not None and self._abort is not abort:
                return False
            self._state = GateState.CANCELLED
            self._cond.notify_all()
            return True
