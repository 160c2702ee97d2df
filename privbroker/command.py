## ================================================================================
## command.py is a part of privbroker, which is distributed under the
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

import shlex
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

@dataclass(frozen=True)
class Command:
    """
    A program to run with elevated rights, and its arguments.

    Commands never carry credentials, so describe() is always safe to log.
    Commands whose argv holds an opaque payload (see functions.py) set a
    label, which is shown instead of the argv.
    """
    executable: str
    args: Tuple[str, ...] = ()
    label: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        if not isinstance(self.executable, str) or not self.executable.strip():
            raise ValueError("Command requires a non-empty executable")
        ## Frozen, so go around __setattr__ to normalize
        object.__setattr__(self, "args", tuple(str(a) for a in self.args))

    @classmethod
    def of(cls, *argv: str, label: Optional[str] = None) -> "Command":
        if not argv:
            raise ValueError("Command requires a non-empty executable")
        exe, *args = argv
        return cls(exe, tuple(args), label)

    def argv(self) -> List[str]:
        return [self.executable, *self.args]

    def describe(self) -> str:
        if self.label:
            return self.label
        return " ".join(shlex.quote(a) for a in self.argv())

    def __repr__(self):
        return f"Command({self.describe()!r})"

    def __str__(self):
        return self.describe()
