from __future__ import annotations

import pytest

from privbroker.credential import Credential, wipeBuffer


def test_str_secret_is_encoded():
    cred = Credential("pässword")
    assert bytes(cred.payload()) == "pässword\n".encode("utf-8")


def test_bytearray_is_taken_over_and_zeroed():
    buf = bytearray(b"hunter2")
    cred = Credential(buf)
    cred.wipe()
    assert cred.wiped
    assert buf == bytearray()


def test_wipe_zeroes_before_clearing():
    buf = bytearray(b"hunter2")
    seen = []

    class Spy(bytearray):
        def clear(self):
            seen.append(bytes(self))
            super().clear()

    spy = Spy(buf)
    wipeBuffer(spy)
    assert seen == [b"\x00" * 7]
    assert len(spy) == 0


def test_context_manager_wipes_on_error():
    cred = Credential("pw")
    with pytest.raises(RuntimeError):
        with cred:
            raise RuntimeError("boom")
    assert cred.wiped


def test_repr_never_shows_secret():
    cred = Credential("hunter2")
    assert "hunter2" not in repr(cred)
    assert "hunter2" not in str(cred)


def test_payload_after_wipe_raises():
    cred = Credential("pw")
    cred.wipe()
    with pytest.raises(ValueError):
        cred.payload()


def test_rejects_other_types():
    with pytest.raises(TypeError):
        Credential(1234)
