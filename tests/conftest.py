import os

import pytest

from debstanza.signing import GpgSigningKey, GpgvKeyring
from tutil import (
    GPG_TOOLS_AVAILABLE,
    export_public_key,
    generate_test_key,
    private_dir,
    stop_gpg_agent,
)

# Keep the output of the logging tests free of escape sequences, regardless of
# where the tests are run.
os.environ["DEB822_COLORS"] = "never"

TEST_KEY_USER_ID = "debstanza test key <test@example.org>"
OTHER_KEY_USER_ID = "someone else <other@example.org>"


@pytest.fixture(scope="session")
def gpg_home(tmp_path_factory) -> str:
    if not GPG_TOOLS_AVAILABLE:
        pytest.skip("gpg and gpgv are required for this test")
    homedir = private_dir(str(tmp_path_factory.mktemp("gnupg")))
    yield homedir
    stop_gpg_agent(homedir)


@pytest.fixture(scope="session")
def test_key_fingerprint(gpg_home: str) -> str:
    return generate_test_key(gpg_home, TEST_KEY_USER_ID)


@pytest.fixture(scope="session")
def other_key_fingerprint(gpg_home: str) -> str:
    return generate_test_key(gpg_home, OTHER_KEY_USER_ID)


@pytest.fixture(scope="session")
def signing_key(gpg_home: str, test_key_fingerprint: str) -> GpgSigningKey:
    return GpgSigningKey(test_key_fingerprint, homedir=gpg_home)


@pytest.fixture(scope="session")
def keyring(tmp_path_factory, gpg_home: str, test_key_fingerprint: str) -> GpgvKeyring:
    path = tmp_path_factory.mktemp("keyrings") / "test-key.gpg"
    return GpgvKeyring([export_public_key(gpg_home, test_key_fingerprint, str(path))])


@pytest.fixture(scope="session")
def other_keyring(
    tmp_path_factory,
    gpg_home: str,
    other_key_fingerprint: str,
) -> GpgvKeyring:
    path = tmp_path_factory.mktemp("keyrings") / "other-key.gpg"
    return GpgvKeyring([export_public_key(gpg_home, other_key_fingerprint, str(path))])
