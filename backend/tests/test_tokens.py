import uuid

from citypulse.agui.tokens import bearer_token, create_device_token, verify_device_token

SECRET = "s3cret"


def test_round_trip_returns_device_id():
    device_id = str(uuid.uuid4())
    token = create_device_token(SECRET, device_id)
    encoded, sig = token.split(".")
    assert "=" not in encoded
    assert len(sig) == 32
    assert verify_device_token(token, SECRET) == device_id


def test_wrong_secret_or_tampered_signature_fails():
    token = create_device_token(SECRET, str(uuid.uuid4()))
    assert verify_device_token(token, "other") is None
    flipped = token[:-1] + ("0" if token[-1] != "0" else "1")
    assert verify_device_token(flipped, SECRET) is None
    assert verify_device_token(token[:-2], SECRET) is None


def test_malformed_tokens():
    assert verify_device_token("", SECRET) is None
    assert verify_device_token("no-dot", SECRET) is None
    assert verify_device_token(".abc", SECRET) is None
    assert verify_device_token("abc.", SECRET) is None
    assert verify_device_token("!!!.abc", SECRET) is None


def test_non_uuid_device_ids_are_rejected():
    token = create_device_token(SECRET, "not-a-uuid")
    assert verify_device_token(token, SECRET) is None


def test_bearer_token():
    assert bearer_token("Bearer abc.def") == "abc.def"
    assert bearer_token("bearer   abc ") == "abc"
    assert bearer_token("Basic xyz") is None
    assert bearer_token("Bearer ") is None
    assert bearer_token(None) is None
