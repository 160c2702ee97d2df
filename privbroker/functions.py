## ================================================================================
## functions.py is a part of privbroker, which is distributed under the
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
Run Python functions as root.

The function and its arguments are serialized with dill and handed to a
fresh interpreter, which is elevated through the broker like any other
command. The return value comes back as JSON, so it has to be JSON
serializable.

    @privileged(broker)
    def whoami():
        import getpass
        return getpass.getuser()
"""

import base64
import json
import logging
import sys
from functools import wraps
from typing import Any, Callable, List

import dill
dill.settings["recurse"] = False

from .command import Command
from .privesc import PrivbrokerException, PException

log = logging.getLogger(__name__)

PY_CMD = """
import base64, sys, dill
from privbroker.functions import invoke
fn, args = dill.loads(base64.b64decode({payload!r}))
sys.stdout.write(invoke(fn, args))
"""

class ElevationFailed(PrivbrokerException):
    def __init__(self, outcome):
        super().__init__(str(outcome))
        self.outcome = outcome

def invoke(fn: Callable, args) -> str:
    """
    Runs in the elevated interpreter.
    """
    try:
        ret = json.dumps([None, fn(*args)])
    except Exception as e:
        ret = json.dumps([(type(e).__name__, str(e)), None])
    return ret

def pythonCommand(fn: Callable, args) -> Command:
    payload = base64.b64encode(dill.dumps((fn, tuple(args)), byref=False, fmode=False, recurse=False))
    name = getattr(fn, "__qualname__", None) or repr(fn)
    return Command(sys.executable, ("-c", PY_CMD.format(payload=payload.decode("ascii"))),
                   label=f"python:{name}")

def decodeResult(lines: List[str]) -> Any:
    try:
        exc, obj = json.loads("\n".join(lines))
    except ValueError:
        raise PrivbrokerException("Unable to retrieve output of function")
    if exc:
        raise PException(*exc)
    return obj

def privileged(broker):
    """
    Returns decorator for privileged functions. Calling the decorated
    function runs it as root and returns its value, or raises
    ElevationFailed when it could not be run.
    """
    def sub(fn):
        @wraps(fn)
        def sub(*args):
            outcome = broker.run(pythonCommand(fn, args))
            if not outcome.ok:
                log.info("Privileged call to %s failed: %s", fn.__qualname__, outcome)
                raise ElevationFailed(outcome)
            return decodeResult(outcome.output)
        return sub
    return sub
