#!/usr/bin/python3

## ================================================================================
## privesc.py is a part of privbroker, which is distributed under the
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
Elevation mechanisms. We try them in the following order:
  - pkexec, only when polkit authorizes us without asking for anything
  - sudo, with a password supplied by the caller

Every attempt runs the command through a small shell wrapper that prints
a separator before exec'ing the real program. Seeing the separator on
stdout means elevation succeeded, and the exit status is the command's.
Not seeing it means the mechanism itself refused or broke, which is how
a failing command is told apart from a failing elevation.
"""

from subprocess import Popen, PIPE
from typing import List, Optional, Tuple
import logging
import os
import re
import time

from .command import Command
from .credential import Credential, wipeBuffer
from .external import findExe
from .locations import location
from .results import (AttemptResult, Success, Denied, Unavailable,
                      CredentialRejected, CommandFailed, ExitInfo)

log = logging.getLogger(__name__)

## $0 is the separator, "$@" the command. The command gets /dev/null
## as stdin, sudo -S may not have consumed all of what we wrote to it.
WRAPPER = 'printf "%s\\n" "$0"; exec "$@" </dev/null'

## Exit statuses of pkexec when it did not run the program
PKEXEC_DISMISSED = 126
PKEXEC_NOT_AUTHORIZED = 127

## Exit statuses of pkcheck
PKCHECK_AUTHORIZED = 0
PKCHECK_DENIED = {1, 2, 3}

SUDO_BAD_PASSWORD_RX = re.compile(
    r"incorrect password|Sorry, try again|no password was provided|"
    r"Authentication failure|a password is required",
    re.IGNORECASE)

class PrivbrokerException(Exception):
    pass

class PException(PrivbrokerException):
    """
    This exception is raised when a function run through
    functions.privileged raises an exception. The exception name and
    message are kept intact, but the original exception object
    cannot be safely reconstructed as this might allow for
    code execution by i.e raising Popen([...]) inside of
    the sub process.
    """
    def __init__(self, exc_name, msg):
        super().__init__(exc_name, msg)
        self.name = exc_name
        self.msg = msg

    def __repr__(self):
        return f"{self.name}({self.msg!r})"
    __str__ = __repr__

def makeSeparator() -> str:
    return f"BEGIN ELEVATED OUTPUT {os.getpid()}-{time.time()}"

def wrap(command: Command, sep: str) -> List[str]:
    return [location("sh"), "-c", WRAPPER, sep, *command.argv()]

def splitOutput(out: str, sep: str) -> Tuple[bool, List[str]]:
    """
    Returns whether the separator was seen, and the lines after it.
    """
    _, found, after = out.partition(sep + "\n")
    if not found:
        return False, []
    return True, after.splitlines()

def spawn(argv: List[str],
          stdin: Optional[bytearray] = None,
          env: Optional[dict] = None) -> Tuple[int, str, str]:
    p = Popen(argv, stdin=PIPE if stdin is not None else None,
              stdout=PIPE, stderr=PIPE, env=env)
    out, err = p.communicate(stdin)
    return (p.returncode,
            out.decode("utf-8", errors="replace"),
            err.decode("utf-8", errors="replace"))

class ElevationMethod:
    """
    Elevation methods are ways to run commands as root.
    """
    name = "none"

    def __init__(self, base_cmd: str):
        self.base_cmd = base_cmd

    def locate(self) -> Optional[str]:
        exe = findExe(self.base_cmd)
        return exe.pathTo() if exe else None

    def classify(self, command: Command, sep: str, ret: int, out: str, err: str) -> AttemptResult:
        started, lines = splitOutput(out, sep)
        if started:
            if ret == 0:
                log.info("%s: %s succeeded", self.name, command)
                return Success(lines)
            log.info("%s: %s returned failure status: %d", self.name, command, ret)
            return CommandFailed(ExitInfo(ret, err))
        return self.refused(command, ret, err)

    def refused(self, command: Command, ret: int, err: str) -> AttemptResult:
        raise NotImplementedError

class PolkitMethod(ElevationMethod):
    """
    Policy mechanism. Never asks for a password, polkit either
    lets us through on its own or we report Denied.
    """
    name = "pkexec"

    def __init__(self,
                 pkexec: Optional[str] = None,
                 pkcheck: Optional[str] = None,
                 action_id: str = "org.freedesktop.policykit.exec",
                 precheck: bool = True):
        super().__init__(pkexec or location("pkexec"))
        self.pkcheck = pkcheck or location("pkcheck")
        self.action_id = action_id
        self.precheck = precheck

    def check(self) -> Optional[AttemptResult]:
        """
        Ask polkit whether we are authorized, without allowing
        user interaction. Returns None when we are.
        """
        exe = findExe(self.pkcheck)
        if exe is None:
            return Unavailable(f"No such method: {self.pkcheck}")
        argv = [exe.pathTo(), "--action-id", self.action_id, "--process", str(os.getpid())]
        try:
            ret, _, err = spawn(argv)
        except OSError as e:
            return Unavailable(f"Unable to run pkcheck: {e}")
        if ret == PKCHECK_AUTHORIZED:
            return None
        if ret in PKCHECK_DENIED:
            return Denied(err.strip())
        return Unavailable(f"pkcheck returned failure status: {ret}")

    def attempt(self, command: Command) -> AttemptResult:
        path = self.locate()
        if path is None:
            log.info("pkexec: not installed")
            return Unavailable(f"No such method: {self.base_cmd}")
        if self.precheck:
            res = self.check()
            if res is not None:
                log.info("pkexec: polkit will not authorize %s without a prompt: %s",
                         command, res.detail)
                return res
        sep = makeSeparator()
        argv = [path, "--disable-internal-agent", *wrap(command, sep)]
        log.debug("pkexec: running %s", command)
        try:
            ret, out, err = spawn(argv)
        except OSError as e:
            return Unavailable(f"Unable to run pkexec: {e}")
        return self.classify(command, sep, ret, out, err)

    def refused(self, command, ret, err):
        if ret in (PKEXEC_DISMISSED, PKEXEC_NOT_AUTHORIZED):
            log.info("pkexec: not authorized to run %s", command)
            return Denied(err.strip())
        log.warning("pkexec: failed with status %d: %s", ret, err.strip())
        return Unavailable(err.strip())

class SudoMethod(ElevationMethod):
    """
    Credential mechanism. The password goes to sudo on stdin, once.
    """
    name = "sudo"

    def __init__(self, sudo: Optional[str] = None):
        super().__init__(sudo or location("sudo"))

    def attempt(self, command: Command, credential: Credential) -> AttemptResult:
        path = self.locate()
        if path is None:
            log.info("sudo: not installed")
            return Unavailable(f"No such method: {self.base_cmd}")
        sep = makeSeparator()
        ## -k: always verify the password we were given, never a cached timestamp
        argv = [path, "-S", "-k", "-p", "", "--", *wrap(command, sep)]
        env = dict(os.environ, LC_ALL="C")
        payload = credential.payload()
        log.debug("sudo: running %s", command)
        try:
            ret, out, err = spawn(argv, stdin=payload, env=env)
        except OSError as e:
            return Unavailable(f"Unable to run sudo: {e}")
        finally:
            wipeBuffer(payload)
        return self.classify(command, sep, ret, out, err)

    def refused(self, command, ret, err):
        msg = err.strip()
        if SUDO_BAD_PASSWORD_RX.search(msg):
            log.info("sudo: password rejected for %s", command)
            return CredentialRejected(msg)
        log.warning("sudo: unable to run %s: %s", command, msg or f"status {ret}")
        return Unavailable(msg)
