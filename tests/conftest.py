"""Shared fixtures: scripted mechanisms and gates, no real elevation."""

from __future__ import annotations

from typing import List, Optional

import pytest

from privbroker.broker import ElevationBroker
from privbroker.command import Command
from privbroker.gate import CredentialGate


class FakePolicy:
    """Policy mechanism returning a canned result."""

    def __init__(self, result):
        self.result = result
        self.calls: List[Command] = []

    def attempt(self, command):
        self.calls.append(command)
        return self.result


class FakeSudo:
    """Credential mechanism returning a canned result and recording what it saw."""

    def __init__(self, result):
        self.result = result
        self.calls = []
        self.secrets: List[bytes] = []
        self.credentials = []

    def attempt(self, command, credential):
        self.calls.append(command)
        self.credentials.append(credential)
        payload = credential.payload()
        self.secrets.append(bytes(payload[:-1]))
        return self.result


class ScriptedGate(CredentialGate):
    """Gate that answers every prompt from a list: a secret, or None to cancel."""

    def __init__(self, answers: List[Optional[str]]):
        super().__init__(on_prompt=self._answer)
        self.answers = list(answers)
        self.prompts = 0

    def _answer(self, command):
        if not self.answers:
            raise AssertionError("Gate prompted more times than expected")
        self.prompts += 1
        answer = self.answers.pop(0)
        if answer is None:
            self.cancel()
        else:
            self.supplyCredential(answer)


@pytest.fixture()
def command():
    return Command.of("ls", "/root")


@pytest.fixture()
def make_broker():
    brokers = []

    def make(policy_result, sudo_result=None, answers=()):
        policy = FakePolicy(policy_result)
        sudo = FakeSudo(sudo_result)
        gate = ScriptedGate(list(answers))
        broker = ElevationBroker(policy, sudo, gate, max_workers=2)
        brokers.append(broker)
        return broker, policy, sudo, gate

    yield make
    for b in brokers:
        b.shutdown(wait=False)
