"""
Tests for the vault: key derivation, AES-GCM sealing, entropy and protectors.
"""
import os
import stat
import sys

import pytest

from neutron_cache.exceptions import CryptoError
from neutron_cache.vault import crypto, entropy
from neutron_cache.vault.protector import (
    AesGcmProtector,
    DpapiProtector,
    default_protector,
)


class TestKeyDerivation:
    """Tests for derive_key and build_entropy."""

    def test_entropy_layout(self):
        """Test the '<app>|<machine>|<user>' entropy string."""
        assert crypto.build_entropy("NeutronDrive", "m1", "alice") == b"NeutronDrive|m1|alice"

    def test_derive_is_deterministic(self):
        """Test the same entropy yields the same 32-byte key."""
        a = crypto.derive_key(b"NeutronDrive|m1|alice")
        b = crypto.derive_key(b"NeutronDrive|m1|alice")
        assert len(a) == crypto.KEY_LENGTH
        assert a == b

    def test_different_entropy_different_key(self):
        """Test a different user gives a different key."""
        assert crypto.derive_key(b"NeutronDrive|m1|alice") != crypto.derive_key(b"NeutronDrive|m1|bob")

    def test_salt_is_sixteen_bytes(self):
        """Test the fixed derivation salt size."""
        assert len(crypto.DERIVATION_SALT) == 16

    def test_wipe(self):
        """Test wipe zeroes the buffer in place."""
        key = bytearray(b"secret")
        crypto.wipe(key)
        assert key == bytearray(6)


class TestSealing:
    """Tests for the [nonce|tag|ciphertext] layout."""

    ENTROPY = b"NeutronDrive|m1|alice"

    def test_round_trip(self):
        """Test unseal(seal(x)) == x."""
        assert crypto.unseal(crypto.seal(b"hello", self.ENTROPY), self.ENTROPY) == b"hello"

    def test_layout_length(self):
        """Test output is nonce + tag + ciphertext of plaintext length."""
        blob = crypto.seal(b"hello", self.ENTROPY)
        assert len(blob) == crypto.NONCE_SIZE + crypto.TAG_SIZE + len(b"hello")

    def test_nonce_is_random(self):
        """Test two seals of the same plaintext differ."""
        assert crypto.seal(b"hello", self.ENTROPY) != crypto.seal(b"hello", self.ENTROPY)

    def test_empty_plaintext(self):
        """Test an empty payload seals to just nonce and tag."""
        blob = crypto.seal(b"", self.ENTROPY)
        assert len(blob) == 28
        assert crypto.unseal(blob, self.ENTROPY) == b""

    def test_tampered_ciphertext(self):
        """Test a flipped ciphertext byte fails authentication."""
        blob = bytearray(crypto.seal(b"hello", self.ENTROPY))
        blob[-1] ^= 0x01
        with pytest.raises(CryptoError):
            crypto.unseal(bytes(blob), self.ENTROPY)

    def test_tampered_tag(self):
        """Test a flipped tag byte fails authentication."""
        blob = bytearray(crypto.seal(b"hello", self.ENTROPY))
        blob[crypto.NONCE_SIZE] ^= 0x01
        with pytest.raises(CryptoError):
            crypto.unseal(bytes(blob), self.ENTROPY)

    @pytest.mark.parametrize("size", [0, 1, 27])
    def test_truncated(self, size):
        """Test input shorter than nonce + tag is rejected."""
        with pytest.raises(CryptoError):
            crypto.unseal(b"\x00" * size, self.ENTROPY)


class TestAesGcmProtector:
    """Tests for the AES-GCM protector."""

    def test_round_trip(self, protector):
        """Test decrypt(encrypt(b'hello')) == b'hello' for machine m1 / alice."""
        assert protector.decrypt(protector.encrypt(b"hello")) == b"hello"

    def test_other_entropy_fails(self, protector):
        """Test a blob from other host entropy raises CryptoError."""
        other = AesGcmProtector(app_name="NeutronDrive", machine_id="m2", username="alice")
        with pytest.raises(CryptoError):
            protector.decrypt(other.encrypt(b"hello"))

    def test_other_app_fails(self, protector):
        """Test the app name is part of the key."""
        other = AesGcmProtector(app_name="Other", machine_id="m1", username="alice")
        with pytest.raises(CryptoError):
            protector.decrypt(other.encrypt(b"hello"))

    def test_plaintext_json_is_not_decryptable(self, protector):
        """Test legacy JSON bytes raise CryptoError rather than garbage."""
        with pytest.raises(CryptoError):
            protector.decrypt(b'{"session": null, "secrets": {}}')

    def test_resolves_host_identity(self, monkeypatch):
        """Test machine id and user name default to the host lookups."""
        monkeypatch.setattr("neutron_cache.vault.protector.get_machine_id", lambda: "m1")
        monkeypatch.setattr("neutron_cache.vault.protector.get_username", lambda: "alice")
        detected = AesGcmProtector()
        explicit = AesGcmProtector(machine_id="m1", username="alice")
        assert explicit.decrypt(detected.encrypt(b"hello")) == b"hello"

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_harden(self, protector, tmp_path):
        """Test harden restricts the file to owner read/write."""
        path = tmp_path / "cache.json"
        path.write_bytes(b"x")
        os.chmod(path, 0o644)
        protector.harden(path)
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_harden_missing_file(self, protector, tmp_path):
        """Test harden ignores a missing file."""
        protector.harden(tmp_path / "missing.json")

    def test_repr_hides_machine_id(self, protector):
        """Test the repr does not include the machine id."""
        assert "m1" not in repr(protector)


class TestPlatformSelection:
    """Tests for default_protector."""

    def test_non_windows_uses_aes_gcm(self, monkeypatch):
        """Test Linux selects the AES-GCM protector."""
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setattr("neutron_cache.vault.protector.get_machine_id", lambda: "m1")
        monkeypatch.setattr("neutron_cache.vault.protector.get_username", lambda: "alice")
        assert isinstance(default_protector(), AesGcmProtector)

    @pytest.mark.skipif(sys.platform != "win32", reason="DPAPI is Windows only")
    def test_windows_uses_dpapi(self):
        """Test Windows selects DPAPI and round trips."""
        protector = default_protector()
        assert isinstance(protector, DpapiProtector)
        assert protector.decrypt(protector.encrypt(b"hello")) == b"hello"


class TestEntropy:
    """Tests for machine id resolution."""

    def test_machine_id_file(self, monkeypatch, tmp_path):
        """Test the first non-empty machine-id file wins."""
        empty = tmp_path / "empty"
        empty.write_text("\n")
        real = tmp_path / "machine-id"
        real.write_text("abc123\n")
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setattr(entropy, "MACHINE_ID_PATHS", (tmp_path / "missing", empty, real))
        assert entropy.get_machine_id() == "abc123"

    def test_hostname_fallback(self, monkeypatch, tmp_path):
        """Test the hostname is used when no id source is available."""
        monkeypatch.setattr(sys, "platform", "linux")
        monkeypatch.setattr(entropy, "MACHINE_ID_PATHS", (tmp_path / "missing",))
        monkeypatch.setattr(entropy.socket, "gethostname", lambda: "box")
        assert entropy.get_machine_id() == "box"

    def test_macos_platform_uuid(self, monkeypatch):
        """Test macOS reads IOPlatformUUID through ioreg."""
        monkeypatch.setattr(sys, "platform", "darwin")
        monkeypatch.setattr(entropy, "_read_platform_uuid", lambda: "UUID-1")
        assert entropy.get_machine_id() == "UUID-1"

    def test_parse_platform_uuid(self):
        """Test IOPlatformUUID extraction from ioreg output."""
        output = (
            '+-o Mac  <class IOPlatformExpertDevice>\n'
            '  {\n'
            '    "IOPlatformSerialNumber" = "C02XXXX"\n'
            '    "IOPlatformUUID" = "4C4C4544-0042-3010-8050-B7C04F4E3732"\n'
            '  }\n'
        )
        assert entropy.parse_platform_uuid(output) == "4C4C4544-0042-3010-8050-B7C04F4E3732"
        assert entropy.parse_platform_uuid("nothing here") is None

    def test_username_without_login(self, monkeypatch):
        """Test a missing login name yields an empty user part."""
        def no_user():
            raise OSError("no login")
        monkeypatch.setattr(entropy.getpass, "getuser", no_user)
        assert entropy.get_username() == ""
