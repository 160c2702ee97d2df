## ================================================================================
## cli.py is a part of privbroker, which is distributed under the
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
Run a command as root from a terminal:
    privbroker [options] [--] <program> <args>...
Without a program, lists /root.

Polkit is tried first, the password is only asked for when that fails.
"""

import argparse
import getpass
import logging
import os
import sys
import termios
import threading
from concurrent.futures import TimeoutError
from importlib import metadata

from .broker import getBroker
from .priv_actions import listingCommand
from .command import Command
from .gate import CredentialGate, GateError
from .results import FailReason
from .settings import Settings, SettingsError

log = logging.getLogger(__name__)

def terminalPrompt(gate: CredentialGate):
    def ask(command):
        try:
            secret = getpass.getpass(f"[privbroker] password to run {command}: ")
        except (EOFError, KeyboardInterrupt):
            print(file=sys.stderr)
            gate.cancel()
            return
        if not secret:
            gate.cancel()
            return
        try:
            gate.supplyCredential(bytearray(secret.encode("utf-8")))
        except GateError:
            log.info("Password entered after the prompt for %s went away", command)

    def prompt(command):
        ## getpass blocks on its own thread, the broker worker only waits on the gate
        threading.Thread(target=ask, args=(command,), daemon=True,
                         name="privbroker-prompt").start()
    return prompt

def saveTerminal():
    """
    termios state of stdin, to restore after a timeout leaves getpass
    blocked with echo turned off.
    """
    try:
        fd = sys.stdin.fileno()
        if os.isatty(fd):
            return fd, termios.tcgetattr(fd)
    except (OSError, ValueError, termios.error):
        pass
    return None

def restoreTerminal(saved):
    if saved is None:
        return
    fd, attrs = saved
    try:
        termios.tcsetattr(fd, termios.TCSADRAIN, attrs)
    except (OSError, termios.error) as e:
        log.debug("Unable to restore the terminal: %s", e)

def parseArgs(argv):
    parser = argparse.ArgumentParser(prog="privbroker",
                                     description="Run a command with elevated privileges.")
    parser.add_argument("--no-precheck", action="store_true",
                        help="let pkexec run without asking polkit first "
                             "(an authentication agent may then prompt)")
    parser.add_argument("--timeout", type=float, default=None,
                        help="give up after this many seconds")
    parser.add_argument("--config", default=None, help="path to config.json")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    parser.add_argument("--version", action="store_true")
    parser.add_argument("command", nargs=argparse.REMAINDER)
    args = parser.parse_args(argv)
    if args.command and args.command[0] == "--":
        args.command = args.command[1:]
    return args

def installedVersion():
    try:
        return metadata.version("privbroker")
    except metadata.PackageNotFoundError:
        return "unknown"

def exitStatus(outcome) -> int:
    if outcome.ok:
        return 0
    if outcome.reason == FailReason.USER_CANCELLED:
        return 130
    if outcome.reason == FailReason.COMMAND_FAILED and outcome.exit_info:
        return outcome.exit_info.returncode or 1
    return 1

def main(version=None, argv=None):
    args = parseArgs(sys.argv[1:] if argv is None else argv)
    if args.version:
        print(f"privbroker {version or installedVersion()}")
        return 0

    try:
        settings = Settings.load(args.config)
    except SettingsError as e:
        print(f"privbroker: {e}", file=sys.stderr)
        return 1
    if args.no_precheck:
        settings.policy_precheck = False

    level = settings.log_level.upper()
    if args.verbose:
        level = "DEBUG" if args.verbose > 1 else "INFO"
    logging.basicConfig(level=level, format="%(name)s: %(levelname)s: %(message)s")

    gate = CredentialGate()
    gate.on_prompt = terminalPrompt(gate)
    broker = getBroker(gate, settings)
    if args.command:
        command = Command.of(*args.command)
    else:
        command = listingCommand("/root")
    log.debug("Running %s", command)

    terminal = saveTerminal()
    try:
        if args.timeout is not None:
            outcome = broker.run_with_timeout(command, args.timeout)
        else:
            outcome = broker.run(command)
    except TimeoutError:
        restoreTerminal(terminal)
        print(f"\nprivbroker: timed out after {args.timeout}s", file=sys.stderr)
        return 1
    finally:
        broker.shutdown(wait=False)

    if outcome.ok:
        for line in outcome.output:
            print(line)
    else:
        print(f"privbroker: {command}: {outcome}", file=sys.stderr)
    return exitStatus(outcome)

if __name__ == "__main__":
    sys.exit(main())
