from datetime import timedelta

import pytest
from jose import jwt

from app.core import security
from app.core.security import JWTKeyError, create_access_token, decode_token
from app.core.settings import settings


@pytest.fixture(autouse=True)
def _clear_key_cache():
    security._load_public_key.cache_clear()
    yield
    security._load_public_key.cache_clear()


def test_access_token_round_trip() -> None:
    token = create_access_token("officer1", expires_delta=timedelta(minutes=5))

    decoded = decode_token(token, expected_type="access")

    assert decoded["sub"] == "officer1"
    assert decoded["type"] == "access"
    assert "iat" in decoded and "exp" in decoded


def test_wrong_token_type_is_rejected() -> None:
    token = jwt.encode(
        {"sub": "officer1", "type": "refresh"}, settings.secret_key, algorithm="HS256"
    )

    with pytest.raises(ValueError, match="Unexpected token type"):
        decode_token(token, expected_type="access")


def test_token_signed_with_other_secret_is_rejected() -> None:
    token = create_access_token("officer1", signing_key="some-other-secret")

    with pytest.raises(ValueError, match="Invalid token"):
        decode_token(token)


def test_rs256_tokens_verify_with_public_key(monkeypatch, tmp_path) -> None:
    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric import rsa

    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    pub_file = tmp_path / "pub.pem"
    pub_file.write_bytes(public_pem)

    # Patch settings directly because they are loaded at import time
    monkeypatch.setattr(settings, "jwt_algorithm", "RS256")
    monkeypatch.setattr(settings, "jwt_public_key_path", str(pub_file))

    token = create_access_token("officer9", signing_key=private_pem)

    assert decode_token(token, expected_type="access")["sub"] == "officer9"


def test_missing_public_key_is_reported(monkeypatch) -> None:
    monkeypatch.setattr(settings, "jwt_algorithm", "RS256")
    monkeypatch.setattr(settings, "jwt_public_key", None)
    monkeypatch.setattr(settings, "jwt_public_key_path", None)

    with pytest.raises(JWTKeyError):
        decode_token("not-a-token")
