"""Password hashing, secret digests and the wallet backup cipher."""

import base64

import pytest
from conftest import MASTER_KEY

from core.security import BackupCipher, PasswordHasher, digest, new_verification_code


class TestPasswordHasher:
    def test_verify(self):
        hasher = PasswordHasher(rounds=1000)
        stored = hasher.hash("Str0ngPassw0rd")
        assert hasher.verify("Str0ngPassw0rd", stored)
        assert not hasher.verify("str0ngpassw0rd", stored)

    def test_hashes_are_salted(self):
        hasher = PasswordHasher(rounds=1000)
        assert hasher.hash("same") != hasher.hash("same")

    def test_rounds_are_embedded_in_the_hash(self):
        assert "$1000$" in PasswordHasher(rounds=1000).hash("x")

    @pytest.mark.parametrize("stored", ["", "not-a-hash", "$2b$12$abc"])
    def test_corrupt_stored_hash_is_a_mismatch(self, stored):
        assert PasswordHasher(rounds=1000).verify("x", stored) is False

    def test_verify_dummy_is_always_false(self):
        assert PasswordHasher(rounds=1000).verify_dummy("anything") is False


def test_digest_is_hex_sha256():
    assert digest("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def test_verification_code_is_six_digits():
    for _ in range(50):
        code = new_verification_code()
        assert len(code) == 6 and code.isdigit()


class TestBackupCipher:
    def test_round_trip_uses_fresh_nonces(self):
        cipher = BackupCipher(MASTER_KEY)
        ct1, iv1 = cipher.encrypt("client-encrypted-blob")
        ct2, iv2 = cipher.encrypt("client-encrypted-blob")
        assert iv1 != iv2 and ct1 != ct2
        assert cipher.decrypt(ct1, iv1) == "client-encrypted-blob"

    def test_tampered_ciphertext_is_rejected(self):
        cipher = BackupCipher(MASTER_KEY)
        ct, iv = cipher.encrypt("blob")
        raw = bytearray(base64.b64decode(ct))
        raw[0] ^= 0x01
        with pytest.raises(ValueError):
            cipher.decrypt(base64.b64encode(bytes(raw)).decode("ascii"), iv)

    def test_wrong_key_is_rejected(self):
        ct, iv = BackupCipher(MASTER_KEY).encrypt("blob")
        other = BackupCipher(base64.b64encode(b"\x07" * 32).decode("ascii"))
        with pytest.raises(ValueError):
            other.decrypt(ct, iv)

    @pytest.mark.parametrize("key", ["", base64.b64encode(b"short").decode("ascii")])
    def test_bad_master_key(self, key):
        with pytest.raises(RuntimeError):
            BackupCipher(key)
