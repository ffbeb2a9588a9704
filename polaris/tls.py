import datetime
import os.path
import logging
import re
import ssl
import traceback

from cryptography import x509
from cryptography.x509.oid import NameOID
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa


from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .config import TLSConfig


log = logging.getLogger("polaris.tls")

PEM_KEY_RE = re.compile(
    rb"-----BEGIN ([A-Z ]*)PRIVATE KEY-----.*?-----END \1PRIVATE KEY-----",
    re.DOTALL,
)

CERTIFICATE_LIFETIME = datetime.timedelta(days=30)


def make_partial_context():
    c = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    c.minimum_version = ssl.TLSVersion.TLSv1_2
    c.options |= ssl.OP_SINGLE_DH_USE | ssl.OP_SINGLE_ECDH_USE
    c.check_hostname = False
    c.verify_mode = ssl.VerifyMode.CERT_NONE
    return c


def load_private_key(key_path: str):
    """Load the single PEM private key in ``key_path``.

    Any key type the cryptography package understands is accepted. A file
    holding zero or several keys, or a passphrase-protected key, is
    rejected with ValueError.
    """
    with open(key_path, "rb") as f:
        data = f.read()

    blocks = [m.group(0) for m in PEM_KEY_RE.finditer(data)]
    if len(blocks) != 1:
        raise ValueError(
            f"expected a single private key in {key_path}, found {len(blocks)}"
        )

    try:
        return serialization.load_pem_private_key(blocks[0], password=None)
    except TypeError as e:
        raise ValueError(f"private key in {key_path} is encrypted: {e}") from e


def make_context(cert_path: str, key_path: str):
    load_private_key(key_path)

    c = make_partial_context()
    c.load_cert_chain(cert_path, keyfile=key_path)
    return c


def make_reloading_context(tls_config: "TLSConfig"):
    """Build a context that picks up the current certificate per handshake.

    The returned context carries the certificate loaded at startup; the SNI
    callback swaps in whatever ``tls_config`` currently caches, so a cleared
    cache or a renewed certificate applies to new connections.
    """

    def sni_callback(sock, host, _original_ctx):
        known = tls_config.hostnames
        if known and host is not None and host.lower() not in known:
            log.warning(f"Handshake for unknown host {host}")
            return ssl.ALERT_DESCRIPTION_UNRECOGNIZED_NAME

        try:
            sock.context = tls_config.get_ssl_context()
        except Exception:
            log.warning(f"When setting context after SNI; {traceback.format_exc()}")

    c = tls_config.get_ssl_context()
    c.sni_callback = sni_callback
    return c


def certificate_expiry(cert_path: str) -> Optional[datetime.datetime]:
    """Expiry of the certificate at ``cert_path``, or None if there is none."""
    if not os.path.exists(cert_path):
        return None

    with open(cert_path, "rb") as f:
        return x509.load_pem_x509_certificate(f.read()).not_valid_after_utc


def _generate_key(key_type: str):
    if key_type == "ec":
        return ec.generate_private_key(ec.SECP256R1())
    elif key_type == "rsa":
        return rsa.generate_private_key(public_exponent=65537, key_size=4096)

    raise ValueError(f"Unknown key type {key_type!r}")


def _load_or_create_key(key_path: str, key_type: str):
    if os.path.exists(key_path):
        log.info(f"Reusing private key {key_path}")
        return load_private_key(key_path)

    key = _generate_key(key_type)
    with open(key_path, "wb") as f:
        f.write(key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ))

    log.info(f"Generated {key_type} private key {key_path}")
    return key


def self_signed_certificate(key, hosts: List[str]) -> x509.Certificate:
    """A certificate for ``hosts`` valid from yesterday for CERTIFICATE_LIFETIME."""
    now = datetime.datetime.now(datetime.timezone.utc)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, hosts[0])])

    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + CERTIFICATE_LIFETIME)
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(host) for host in hosts]),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )


def update_certificate(
    cert_path: str, key_path: str, hosts: List[str], key_type: str = "ec"
) -> datetime.datetime:
    """Make sure ``cert_path`` holds an unexpired self-signed certificate.

    Used for ``--auto-cert``. An existing key is kept; a new one is
    generated as ``key_type`` ("ec" for P-256 or "rsa") otherwise.
    Returns the certificate's expiry.
    """
    expires = certificate_expiry(cert_path)
    if expires is not None and expires > datetime.datetime.now(datetime.timezone.utc):
        log.debug(f"{cert_path} is valid until {expires}")
        return expires

    log.info(f"Writing self-signed certificate {cert_path} for {', '.join(hosts)}")

    key = _load_or_create_key(key_path, key_type)
    cert = self_signed_certificate(key, hosts)

    with open(cert_path, "wb") as f:
        f.write(cert.public_bytes(serialization.Encoding.PEM))

    return cert.not_valid_after_utc
