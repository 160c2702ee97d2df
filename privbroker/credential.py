## ================================================================================
## credential.py is a part of privbroker, which is distributed under the
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

from typing import Union

class Credential:
    """
    A password, held in a mutable buffer so that it can be zeroed
    as soon as the elevation attempt that needed it is over.

    Use as a context manager, the buffer is wiped on exit:

        with gate.request() as cred:
            sudo.attempt(cmd, cred)

    Note that a str handed to the constructor cannot be wiped by us,
    only the copy we keep. Callers who care should pass a bytearray,
    which is taken over and wiped in place.
    """
    __slots__ = ("_buf",)

    def __init__(self, secret: Union[str, bytes, bytearray]):
        if isinstance(secret, bytearray):
            self._buf = secret
        elif isinstance(secret, bytes):
            self._buf = bytearray(secret)
        elif isinstance(secret, str):
            self._buf = bytearray(secret.encode("utf-8"))
        else:
            raise TypeError(f"Unsupported secret type: {type(secret).__name__}")

    @property
    def wiped(self) -> bool:
        return not self._buf

    def payload(self) -> bytearray:
        """
        Secret followed by a newline, as read by `sudo -S`.
        The returned copy belongs to the caller, who must wipe it.
        """
        if self.wiped:
            raise ValueError("Credential has already been wiped")
        buf = bytearray(self._buf)
        buf += b"\n"
        return buf

    def wipe(self) -> None:
        wipeBuffer(self._buf)

    def __enter__(self):
        return self

    def __exit__(self, type, value, traceback):
        self.wipe()

    def __len__(self):
        return len(self._buf)

    def __repr__(self):
        state = "wiped" if self.wiped else "set"
        return f"Credential(<{state}>)"
    __str__ = __repr__

def wipeBuffer(buf: bytearray) -> None:
    for i in range(len(buf)):
        buf[i] = 0
    buf.clear()
