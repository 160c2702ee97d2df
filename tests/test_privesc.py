"""Classification of pkexec/pkcheck/sudo runs, mostly with a fake process spawner."""

from __future__ import annotations

import os
import shutil

import pytest

from privbroker import privesc
from privbroker.command import Command
from privbroker.credential import Credential
from privbroker.privesc import PolkitMethod, SudoMethod, splitOutput, wrap
from privbroker.results import (
    CommandFailed,
    CredentialRejected,
    Denied,
    ExitInfo,
    Success,
    Unavailable,
)

SEP = "BEGIN ELEVATED OUTPUT test"


class _Exe:
    def __init__(self, name):
        self.path = f"/usr/bin/{name}"

    def pathTo(self):
        return self.path


class _Spawner:
    """Replaces privesc.spawn; answers by program basename."""

    def __init__(self, answers):
        self.answers = answers
        self.calls = []
        self.stdins = []
        self.stdin_objects = []

    def __call__(self, argv, stdin=None, env=None):
        self.calls.append(list(argv))
        self.stdins.append(bytes(stdin) if stdin is not None else None)
        self.stdin_objects.append(stdin)
        self.env = env
        answer = self.answers[argv[0].rsplit("/", 1)[-1]]
        if isinstance(answer, Exception):
            raise answer
        return answer

    def programs(self):
        return [argv[0].rsplit("/", 1)[-1] for argv in self.calls]


@pytest.fixture()
def installed(monkeypatch):
    """All of pkexec, pkcheck and sudo are on PATH; separator is fixed."""
    monkeypatch.setattr(privesc, "findExe", lambda name: _Exe(name))
    monkeypatch.setattr(privesc, "makeSeparator", lambda: SEP)


def _spawner(monkeypatch, **answers):
    sp = _Spawner(answers)
    monkeypatch.setattr(privesc, "spawn", sp)
    return sp


CMD = Command.of("ls", "-la", "/root")


def test_split_output():
    assert splitOutput(f"{SEP}\na\nb\n", SEP) == (True, ["a", "b"])
    assert splitOutput(f"{SEP}\n", SEP) == (True, [])
    assert splitOutput("sudo: something\n", SEP) == (False, [])


def test_wrap_puts_separator_before_command():
    argv = wrap(CMD, SEP)
    assert argv[1] == "-c"
    assert argv[3] == SEP
    assert argv[4:] == ["ls", "-la", "/root"]


# pkexec


def test_pkexec_missing(monkeypatch):
    monkeypatch.setattr(privesc, "findExe", lambda name: None)
    sp = _spawner(monkeypatch)
    res = PolkitMethod().attempt(CMD)
    assert isinstance(res, Unavailable)
    assert sp.calls == []


def test_pkexec_authorized_success(monkeypatch, installed):
    sp = _spawner(monkeypatch, pkcheck=(0, "", ""), pkexec=(0, f"{SEP}\na\nb\n", ""))
    res = PolkitMethod().attempt(CMD)
    assert res == Success(["a", "b"])
    assert sp.programs() == ["pkcheck", "pkexec"]
    pkcheck_argv = sp.calls[0]
    assert "--allow-user-interaction" not in pkcheck_argv
    assert pkcheck_argv[1:3] == ["--action-id", "org.freedesktop.policykit.exec"]
    assert "--disable-internal-agent" in sp.calls[1]


@pytest.mark.parametrize("status", [1, 2, 3])
def test_pkcheck_refusal_is_denied_without_running_pkexec(monkeypatch, installed, status):
    sp = _spawner(monkeypatch, pkcheck=(status, "", "Not authorized."))
    res = PolkitMethod().attempt(CMD)
    assert isinstance(res, Denied)
    assert sp.programs() == ["pkcheck"]


def test_pkcheck_error_is_unavailable(monkeypatch, installed):
    _spawner(monkeypatch, pkcheck=(127, "", "Error checking for authorization"))
    res = PolkitMethod().attempt(CMD)
    assert isinstance(res, Unavailable)


def test_precheck_disabled(monkeypatch, installed):
    sp = _spawner(monkeypatch, pkexec=(0, f"{SEP}\nx\n", ""))
    res = PolkitMethod(precheck=False).attempt(CMD)
    assert res == Success(["x"])
    assert sp.programs() == ["pkexec"]


@pytest.mark.parametrize("status", [126, 127])
def test_pkexec_refusal_is_denied(monkeypatch, installed, status):
    _spawner(monkeypatch, pkexec=(status, "", "Error executing command as another user: Not authorized"))
    res = PolkitMethod(precheck=False).attempt(CMD)
    assert isinstance(res, Denied)


def test_command_exit_127_is_command_failure(monkeypatch, installed):
    """A command that is not found exits 127 after the separator was printed."""
    _spawner(monkeypatch, pkexec=(127, f"{SEP}\n", "sh: 1: exec: nope: not found"))
    res = PolkitMethod(precheck=False).attempt(Command.of("nope"))
    assert res == CommandFailed(ExitInfo(127, "sh: 1: exec: nope: not found"))


def test_pkexec_spawn_error(monkeypatch, installed):
    _spawner(monkeypatch, pkexec=PermissionError("denied"))
    res = PolkitMethod(precheck=False).attempt(CMD)
    assert isinstance(res, Unavailable)


# sudo


def test_sudo_password_goes_to_stdin(monkeypatch, installed):
    sp = _spawner(monkeypatch, sudo=(0, f"{SEP}\na\n", ""))
    res = SudoMethod().attempt(CMD, Credential("hunter2"))
    assert res == Success(["a"])
    argv = sp.calls[0]
    assert argv[1:6] == ["-S", "-k", "-p", "", "--"]
    assert not any("hunter2" in a for a in argv)
    assert sp.stdins == [b"hunter2\n"]
    assert sp.env["LC_ALL"] == "C"


def test_sudo_payload_is_wiped(monkeypatch, installed):
    sp = _spawner(monkeypatch, sudo=(0, f"{SEP}\n", ""))
    SudoMethod().attempt(CMD, Credential("hunter2"))
    assert sp.stdin_objects[0] == bytearray()


@pytest.mark.parametrize(
    "stderr",
    [
        "Sorry, try again.\nsudo: no password was provided\nsudo: 1 incorrect password attempt",
        "sudo: 1 incorrect password attempt",
    ],
)
def test_sudo_bad_password(monkeypatch, installed, stderr):
    _spawner(monkeypatch, sudo=(1, "", stderr))
    res = SudoMethod().attempt(CMD, Credential("wrong"))
    assert isinstance(res, CredentialRejected)
    assert "wrong" not in res.detail


def test_sudo_not_in_sudoers(monkeypatch, installed):
    _spawner(monkeypatch, sudo=(1, "", "alice is not in the sudoers file."))
    res = SudoMethod().attempt(CMD, Credential("pw"))
    assert isinstance(res, Unavailable)


def test_sudo_command_failure(monkeypatch, installed):
    _spawner(monkeypatch, sudo=(2, f"{SEP}\n", "ls: cannot access '/nope'"))
    res = SudoMethod().attempt(CMD, Credential("pw"))
    assert res == CommandFailed(ExitInfo(2, "ls: cannot access '/nope'"))


def test_sudo_missing(monkeypatch):
    monkeypatch.setattr(privesc, "findExe", lambda name: None)
    res = SudoMethod().attempt(CMD, Credential("pw"))
    assert isinstance(res, Unavailable)


def test_sudo_spawn_error_still_wipes(monkeypatch, installed):
    sp = _spawner(monkeypatch, sudo=OSError("exec format error"))
    res = SudoMethod().attempt(CMD, Credential("pw"))
    assert isinstance(res, Unavailable)
    assert sp.stdin_objects[0] == bytearray()


# where the programs are


def test_program_overrides_read_at_construction(monkeypatch):
    monkeypatch.setenv("PRIVBROKER_SUDO", "/opt/bin/sudo")
    monkeypatch.setenv("PRIVBROKER_PKEXEC", "/opt/bin/pkexec")
    monkeypatch.setenv("PRIVBROKER_PKCHECK", "/opt/bin/pkcheck")
    assert SudoMethod().base_cmd == "/opt/bin/sudo"
    polkit = PolkitMethod()
    assert polkit.base_cmd == "/opt/bin/pkexec"
    assert polkit.pkcheck == "/opt/bin/pkcheck"


def test_shell_override(monkeypatch):
    monkeypatch.setenv("PRIVBROKER_SH", "/usr/local/bin/dash")
    assert wrap(CMD, SEP)[0] == "/usr/local/bin/dash"


def test_explicit_program_beats_environment(monkeypatch):
    monkeypatch.setenv("PRIVBROKER_SUDO", "/opt/bin/sudo")
    assert SudoMethod(sudo="/usr/bin/doas-sudo").base_cmd == "/usr/bin/doas-sudo"


# real processes


NOPASSWD_SUDO = """#!/bin/sh
# Behaves like sudo with NOPASSWD: never reads the password from stdin.
while [ "$#" -gt 0 ] && [ "$1" != "--" ]; do shift; done
shift
exec "$@"
"""


@pytest.mark.skipif(shutil.which("cat") is None or not os.path.exists("/bin/sh"),
                    reason="needs /bin/sh and cat")
def test_unread_password_does_not_reach_command(tmp_path, monkeypatch):
    monkeypatch.delenv("PRIVBROKER_SH", raising=False)
    sudo = tmp_path / "sudo"
    sudo.write_text(NOPASSWD_SUDO)
    sudo.chmod(0o755)

    res = SudoMethod(sudo=str(sudo)).attempt(Command.of("cat"), Credential("hunter2"))

    assert isinstance(res, Success)
    assert not any("hunter2" in line for line in res.output)
