## ================================================================================
## broker.py is a part of privbroker, which is distributed under the
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
Run one command as root, and tell the caller exactly why it did not work.

    broker = getBroker(gate)
    outcome = broker.run(Command.of("ls", "-la", "/root"))

The policy mechanism (polkit) is tried first. If it refuses or is not
there, the gate is asked for a password and the credential mechanism
(sudo) is tried with it. A command that ran and failed is never retried
through the other mechanism, the command is at fault there and not the
privilege path.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, Future, TimeoutError
from typing import Callable, Optional

from .command import Command
from .gate import CredentialGate, CANCELLED
from .privesc import PolkitMethod, SudoMethod
from .results import (ElevationOutcome, Ok, Failed, FailReason, Success, Denied,
                      Unavailable, CredentialRejected, CommandFailed)
from .settings import Settings

log = logging.getLogger(__name__)

class ElevationBroker:
    def __init__(self, policy, credential, gate: CredentialGate, max_workers: int = 4):
        self.policy = policy
        self.credential = credential
        self.gate = gate
        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix="privbroker")

    def run(self, command: Command, abort: Optional[threading.Event] = None) -> ElevationOutcome:
        """
        Setting `abort` stops the run before it prompts, or before the
        password it got is handed to sudo. Either way the outcome is
        Failed(USER_CANCELLED). A command already running is not stopped.
        """
        if not isinstance(command, Command):
            raise TypeError(f"Expected a Command, got {type(command).__name__}")

        res = self.policy.attempt(command)
        if isinstance(res, Success):
            return Ok(res.output)
        if isinstance(res, CommandFailed):
            return Failed(FailReason.COMMAND_FAILED, res.exit_info)
        if not isinstance(res, (Denied, Unavailable)):
            raise TypeError(f"Unexpected result from policy mechanism: {res!r}")
        if abort is not None and abort.is_set():
            log.info("Run of %s aborted after policy elevation failed", command)
            return Failed(FailReason.USER_CANCELLED)
        log.info("Policy elevation of %s failed (%s), asking for a password",
                 command, type(res).__name__)

        cred = self.gate.request(command, abort)
        if cred is CANCELLED:
            return Failed(FailReason.USER_CANCELLED)

        with cred:
            if abort is not None and abort.is_set():
                log.info("Run of %s aborted, dropping the password", command)
                return Failed(FailReason.USER_CANCELLED)
            res = self.credential.attempt(command, cred)

        if isinstance(res, Success):
            return Ok(res.output)
        if isinstance(res, CredentialRejected):
            return Failed(FailReason.CREDENTIAL_REJECTED)
        if isinstance(res, Unavailable):
            return Failed(FailReason.NO_ELEVATION_MECHANISM)
        if isinstance(res, CommandFailed):
            return Failed(FailReason.COMMAND_FAILED, res.exit_info)
        raise TypeError(f"Unexpected result from credential mechanism: {res!r}")

    def run_async(self,
                  command: Command,
                  callback: Optional[Callable[[ElevationOutcome], None]] = None,
                  abort: Optional[threading.Event] = None) -> Future:
        """
        Run the command on a worker thread. The callback, if any,
        is called on that thread with the outcome.
        """
        def sub():
            outcome = self.run(command, abort)
            if callback:
                callback(outcome)
            return outcome
        return self._executor.submit(sub)

    def run_with_timeout(self, command: Command, timeout: float) -> ElevationOutcome:
        """
        Raises concurrent.futures.TimeoutError if the outcome is not
        known in time. The run is aborted: its prompt is cancelled if it
        is up, and it will neither prompt nor call sudo later on. A
        command that is already running as root is left to finish.
        """
        abort = threading.Event()
        fut = self.run_async(command, abort=abort)
        try:
            return fut.result(timeout=timeout)
        except TimeoutError:
            abort.set()
            self.gate.cancel(abort)
            raise

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait)

def getBroker(gate: CredentialGate, settings: Optional[Settings] = None) -> ElevationBroker:
    settings = settings or Settings.load()
    policy = PolkitMethod(action_id=settings.polkit_action,
                          precheck=settings.policy_precheck)
    return ElevationBroker(policy, SudoMethod(), gate, max_workers=settings.max_workers)
