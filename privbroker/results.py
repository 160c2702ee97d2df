## ================================================================================
## results.py is a part of privbroker, which is distributed under the
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
Results of elevation attempts, and the outcome handed back to callers.

A mechanism (see privesc.py) produces one attempt result per invocation:
    Success, Denied, Unavailable, CredentialRejected, CommandFailed
The broker folds those into exactly one outcome per run():
    Ok(output) or Failed(reason)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

@dataclass(frozen=True)
class ExitInfo:
    returncode: int
    stderr: str = ""

    def __str__(self):
        msg = self.stderr.strip()
        if msg:
            return f"exit status {self.returncode}: {msg}"
        return f"exit status {self.returncode}"

## Attempt results

class AttemptResult:
    """
    Base of the attempt results. `detail` is free text for the logs,
    it never contains a credential.
    """

@dataclass(frozen=True)
class Success(AttemptResult):
    output: List[str] = field(default_factory=list)
    detail: str = field(default="", compare=False)

@dataclass(frozen=True)
class Denied(AttemptResult):
    detail: str = field(default="", compare=False)

@dataclass(frozen=True)
class Unavailable(AttemptResult):
    detail: str = field(default="", compare=False)

@dataclass(frozen=True)
class CredentialRejected(AttemptResult):
    detail: str = field(default="", compare=False)

@dataclass(frozen=True)
class CommandFailed(AttemptResult):
    exit_info: Optional[ExitInfo] = None
    detail: str = field(default="", compare=False)

## Outcomes

class FailReason(Enum):
    DENIED = "denied"
    NO_ELEVATION_MECHANISM = "no elevation mechanism available"
    CREDENTIAL_REJECTED = "credential rejected"
    USER_CANCELLED = "cancelled by user"
    COMMAND_FAILED = "command failed"

class ElevationOutcome:
    ok = False

@dataclass(frozen=True)
class Ok(ElevationOutcome):
    output: List[str] = field(default_factory=list)
    ok = True

@dataclass(frozen=True)
class Failed(ElevationOutcome):
    reason: FailReason
    exit_info: Optional[ExitInfo] = None
    ok = False

    def __str__(self):
        if self.exit_info is not None:
            return f"{self.reason.value} ({self.exit_info})"
        return self.reason.value
