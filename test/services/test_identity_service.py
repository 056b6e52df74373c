import time
from datetime import datetime, timedelta, timezone
from unittest import TestCase, IsolatedAsyncioTestCase

import httpx
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from jose import jwt

from app.services.identity_service import FirebaseTokenVerifier, _parse_max_age
from app.utils.error_utils import UnauthorizedError

PROJECT_ID = "nightslip-test"
CERTS_URL = "https://certs.example.com/x509"


def make_key_and_cert():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "securetoken.test")])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    cert_pem = cert.public_bytes(serialization.Encoding.PEM).decode()
    return private_pem, cert_pem


PRIVATE_PEM, CERT_PEM = make_key_and_cert()


def make_id_token(kid="key-1", **overrides):
    now = int(time.time())
    claims = {
        "iss": f"https://securetoken.google.com/{PROJECT_ID}",
        "aud": PROJECT_ID,
        "sub": "uid-123",
        "iat": now,
        "exp": now + 3600,
        "email": "alice@example.com",
        "name": "Alice",
    }
    claims.update(overrides)
    return jwt.encode(claims, PRIVATE_PEM, algorithm="RS256", headers={"kid": kid})


class TestFirebaseTokenVerifier(IsolatedAsyncioTestCase):
    def setUp(self):
        self.cert_requests = 0

        def handler(request: httpx.Request) -> httpx.Response:
            self.cert_requests += 1
            return httpx.Response(200, json={"key-1": CERT_PEM}, headers={"Cache-Control": "public, max-age=600"})

        self.verifier = FirebaseTokenVerifier(
            project_id=PROJECT_ID,
            certs_url=CERTS_URL,
            transport=httpx.MockTransport(handler),
        )

    async def test_valid_token(self):
        identity = await self.verifier.verify(make_id_token())

        self.assertEqual(identity.email, "alice@example.com")
        self.assertEqual(identity.name, "Alice")

    async def test_certificates_are_cached(self):
        await self.verifier.verify(make_id_token())
        await self.verifier.verify(make_id_token())

        self.assertEqual(self.cert_requests, 1)

    async def test_rejects_bad_tokens(self):
        bad_tokens = [
            "not-a-jwt",
            make_id_token(kid="unknown"),
            make_id_token(aud="another-project"),
            make_id_token(iss="https://evil.example.com"),
            make_id_token(exp=int(time.time()) - 60),
            make_id_token(email=None),
        ]
        for token in bad_tokens:
            with self.subTest(token=token[:20]):
                with self.assertRaises(UnauthorizedError):
                    await self.verifier.verify(token)

    async def test_missing_project_id(self):
        verifier = FirebaseTokenVerifier(project_id="", certs_url=CERTS_URL)
        with self.assertRaises(UnauthorizedError):
            await verifier.verify(make_id_token())

    async def test_certificate_fetch_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        verifier = FirebaseTokenVerifier(
            project_id=PROJECT_ID,
            certs_url=CERTS_URL,
            transport=httpx.MockTransport(handler),
        )
        with self.assertRaises(UnauthorizedError):
            await verifier.verify(make_id_token())


class TestParseMaxAge(TestCase):
    def test_parse_max_age(self):
        self.assertEqual(_parse_max_age("public, max-age=19302, must-revalidate"), 19302)
        self.assertEqual(_parse_max_age("no-cache"), 3600)
