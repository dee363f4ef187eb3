"""OpenPGP collaborators used to unwrap, verify and produce signed documents

The deb822 code only depends on the two small interfaces `Keyring` and
`SigningKey`.  The implementations provided here drive the `gpgv` and `gpg`
executables; the status output of gpgv is interpreted via python-debian's
`GpgInfo`.

The executables can be overridden via the `DEB822_GPGV` and `DEB822_GPG`
environment variables or the `executable` parameter.
"""

import abc
import dataclasses
import os
import re
import subprocess
import tempfile
from typing import List, Optional, Sequence, Tuple

from debian.deb822 import GpgInfo

from debstanza.exceptions import SignatureError
from debstanza.util import _debug

_CLEARSIGN_HEADER_RE = re.compile(rb"^-----BEGIN PGP SIGNED MESSAGE-----[ \t\r]*$")
_SIGNATURE_BEGIN = b"-----BEGIN PGP SIGNATURE-----"
_SIGNATURE_END = b"-----END PGP SIGNATURE-----"


def _gpgv_executable() -> str:
    return os.environ.get("DEB822_GPGV", "gpgv")


def _gpg_executable() -> str:
    return os.environ.get("DEB822_GPG", "gpg")


@dataclasses.dataclass(slots=True, frozen=True)
class SignerIdentity:
    """The entity that made a (valid) signature"""

    fingerprint: Optional[str]
    key_id: Optional[str] = None
    user_id: Optional[str] = None

    @classmethod
    def from_gpg_info(cls, gpg_info: GpgInfo) -> "SignerIdentity":
        fingerprint = None
        key_id = None
        user_id = None
        validsig = gpg_info.get("VALIDSIG")
        if validsig:
            fingerprint = validsig[0]
        goodsig = gpg_info.get("GOODSIG")
        if goodsig:
            key_id = goodsig[0]
            if len(goodsig) > 1:
                user_id = goodsig[1]
        return cls(fingerprint, key_id, user_id)


def split_clearsigned(envelope: bytes) -> Tuple[bytes, bytes]:
    """Split a clearsigned message into its signed text and signature block

    Dash-escaped lines are unescaped.  No verification is done.

    :param envelope: The full clearsigned message
    :return: A tuple of the signed text and the armored signature
    """
    lines = envelope.splitlines(keepends=True)
    idx = 0
    while idx < len(lines) and not lines[idx].strip():
        idx += 1
    if idx >= len(lines) or not _CLEARSIGN_HEADER_RE.match(lines[idx]):
        raise SignatureError("Invalid clearsigned input: missing signed message header")
    idx += 1

    # Armor headers (e.g. "Hash: SHA256") are terminated by an empty line
    while idx < len(lines) and lines[idx].strip():
        idx += 1
    if idx >= len(lines):
        raise SignatureError("Invalid clearsigned input: truncated armor headers")
    idx += 1

    payload: List[bytes] = []
    while idx < len(lines) and not lines[idx].startswith(_SIGNATURE_BEGIN):
        line = lines[idx]
        if line.startswith(b"- "):
            line = line[2:]
        payload.append(line)
        idx += 1
    if idx >= len(lines):
        raise SignatureError("Invalid clearsigned input: missing signature block")

    signature_lines = lines[idx:]
    if not any(line.startswith(_SIGNATURE_END) for line in signature_lines):
        raise SignatureError("Invalid clearsigned input: truncated signature block")

    # The line break before the signature block belongs to the armor
    text = b"".join(payload)
    if text.endswith(b"\r\n"):
        text = text[:-2]
    elif text.endswith(b"\n"):
        text = text[:-1]
    return text, b"".join(signature_lines)


class Keyring(abc.ABC):
    """Verifies signed documents

    A keyring that is empty can never validate a signature.  To read a signed
    document without checking the signature, use `SKIP_VERIFICATION`.
    """

    @property
    @abc.abstractmethod
    def is_empty(self) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def verify(self, envelope: bytes) -> Tuple[bytes, Optional[SignerIdentity]]:
        """Verify an inline signed document

        :param envelope: The signed document (e.g. a clearsigned message)
        :return: A tuple of the signed payload and the signer (if known)
        :raises SignatureError: If the signature could not be verified
        """
        raise NotImplementedError

    @abc.abstractmethod
    def verify_detached(
        self,
        data: bytes,
        signature: bytes,
    ) -> Optional[SignerIdentity]:
        raise NotImplementedError


class _SkipVerification(Keyring):
    @property
    def is_empty(self) -> bool:
        return False

    def verify(self, envelope: bytes) -> Tuple[bytes, Optional[SignerIdentity]]:
        text, _ = split_clearsigned(envelope)
        _debug("Skipped signature verification of a clearsigned document")
        return text, None

    def verify_detached(
        self,
        data: bytes,
        signature: bytes,
    ) -> Optional[SignerIdentity]:
        return None

    def __repr__(self) -> str:
        return "SKIP_VERIFICATION"


SKIP_VERIFICATION: Keyring = _SkipVerification()


def check_keyring(keyring: Optional[Keyring]) -> Keyring:
    """Ensure a keyring can verify signatures

    :raises SignatureError: If there is no keyring or the keyring is empty
    """
    if keyring is None:
        raise SignatureError(
            "The input is signed but no keyring was provided to check the signature"
        )
    if keyring.is_empty:
        raise SignatureError(
            "Cannot verify the signature: the keyring is empty (use SKIP_VERIFICATION"
            " to read signed documents without verification)"
        )
    return keyring


class GpgvKeyring(Keyring):
    """A keyring backed by one or more keyring files checked with gpgv"""

    __slots__ = ("_keyrings", "_executable")

    def __init__(
        self,
        keyrings: Sequence[str],
        *,
        executable: Optional[str] = None,
    ) -> None:
        self._keyrings = [os.path.abspath(k) for k in keyrings]
        self._executable = executable

    @property
    def keyrings(self) -> Sequence[str]:
        return tuple(self._keyrings)

    @property
    def is_empty(self) -> bool:
        return not self._keyrings

    @property
    def executable(self) -> str:
        if self._executable is not None:
            return self._executable
        return _gpgv_executable()

    def _keyring_args(self) -> List[str]:
        args = []
        for keyring in self._keyrings:
            args.extend(["--keyring", keyring])
        return args

    def _signer(self, gpg_info: GpgInfo) -> SignerIdentity:
        if not gpg_info.valid():
            errors = " ".join(
                k for k in ("BADSIG", "ERRSIG", "NO_PUBKEY", "EXPKEYSIG", "REVKEYSIG")
                if k in gpg_info
            )
            details = gpg_info.err.strip() if isinstance(gpg_info.err, str) else ""
            raise SignatureError(
                f"Signature verification failed ({errors or 'no valid signature'})."
                f" gpgv said: {details}"
            )
        signer = SignerIdentity.from_gpg_info(gpg_info)
        _debug(f"Valid signature from {signer.fingerprint} ({signer.user_id})")
        return signer

    def verify(self, envelope: bytes) -> Tuple[bytes, Optional[SignerIdentity]]:
        check_keyring(self)
        with tempfile.TemporaryDirectory(prefix="debstanza-") as tmpdir:
            output = os.path.join(tmpdir, "payload")
            try:
                gpg_info = GpgInfo.from_sequence(
                    envelope,
                    keyrings=self._keyrings,
                    executable=[self.executable, "--output", output],
                )
            except OSError as e:
                raise SignatureError(
                    f"Could not run {self.executable} to verify the signature: {e}"
                ) from e
            signer = self._signer(gpg_info)
            try:
                with open(output, "rb") as fd:
                    payload = fd.read()
            except FileNotFoundError as e:
                raise SignatureError(
                    f"{self.executable} did not produce the signed payload"
                ) from e
        return payload, signer

    def verify_detached(
        self,
        data: bytes,
        signature: bytes,
    ) -> Optional[SignerIdentity]:
        check_keyring(self)
        with tempfile.TemporaryDirectory(prefix="debstanza-") as tmpdir:
            data_path = os.path.join(tmpdir, "data")
            signature_path = os.path.join(tmpdir, "data.sig")
            with open(data_path, "wb") as fd:
                fd.write(data)
            with open(signature_path, "wb") as fd:
                fd.write(signature)
            args = [self.executable, "--status-fd", "1"]
            args.extend(self._keyring_args())
            args.extend([signature_path, data_path])
            try:
                proc = subprocess.run(
                    args,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    check=False,
                )
            except OSError as e:
                raise SignatureError(
                    f"Could not run {self.executable} to verify the signature: {e}"
                ) from e
        gpg_info = GpgInfo.from_output(
            proc.stdout.decode("utf-8", errors="replace"),
            proc.stderr.decode("utf-8", errors="replace"),
        )
        return self._signer(gpg_info)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._keyrings!r})"


class SigningKey(abc.ABC):
    """Produces signatures for documents written by the encoder"""

    @abc.abstractmethod
    def clearsign(self, payload: bytes) -> bytes:
        raise NotImplementedError

    @abc.abstractmethod
    def detach_sign(self, payload: bytes) -> bytes:
        raise NotImplementedError


class GpgSigningKey(SigningKey):
    """A secret key available to gpg (selected via `--local-user`)"""

    __slots__ = ("key_id", "homedir", "_executable")

    def __init__(
        self,
        key_id: str,
        *,
        homedir: Optional[str] = None,
        executable: Optional[str] = None,
    ) -> None:
        self.key_id = key_id
        self.homedir = homedir
        self._executable = executable

    @property
    def executable(self) -> str:
        if self._executable is not None:
            return self._executable
        return _gpg_executable()

    def _run_gpg(self, mode_args: Sequence[str], payload: bytes) -> bytes:
        args = [self.executable, "--batch", "--yes", "--armor"]
        if self.homedir is not None:
            args.extend(["--homedir", self.homedir])
        args.extend(["--local-user", self.key_id])
        args.extend(mode_args)
        try:
            proc = subprocess.run(
                args,
                input=payload,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=False,
            )
        except OSError as e:
            raise SignatureError(f"Could not run {self.executable} to sign: {e}") from e
        if proc.returncode != 0:
            details = proc.stderr.decode("utf-8", errors="replace").strip()
            raise SignatureError(
                f"Signing with key {self.key_id} failed (exit code {proc.returncode}): {details}"
            )
        return proc.stdout

    def clearsign(self, payload: bytes) -> bytes:
        return self._run_gpg(["--clearsign"], payload)

    def detach_sign(self, payload: bytes) -> bytes:
        return self._run_gpg(["--detach-sign"], payload)
