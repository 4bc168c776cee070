"""Tests for host environment checks."""

from unittest.mock import patch

from brewapi.core import system


class TestRootOwnership:
    """Tests for running_as_root_but_not_owned_by_root."""

    def test_not_root(self, tmp_path):
        with patch.object(system, "running_as_root", return_value=False):
            assert system.running_as_root_but_not_owned_by_root(tmp_path) is False

    def test_root_on_user_owned_prefix(self, tmp_path):
        with patch.object(system, "running_as_root", return_value=True), \
                patch("pathlib.Path.stat") as mock_stat:
            mock_stat.return_value.st_uid = 501
            assert system.running_as_root_but_not_owned_by_root(tmp_path) is True

    def test_root_on_root_owned_prefix(self, tmp_path):
        with patch.object(system, "running_as_root", return_value=True), \
                patch("pathlib.Path.stat") as mock_stat:
            mock_stat.return_value.st_uid = 0
            assert system.running_as_root_but_not_owned_by_root(tmp_path) is False

    def test_missing_prefix(self, tmp_path):
        with patch.object(system, "running_as_root", return_value=True):
            assert system.running_as_root_but_not_owned_by_root(tmp_path / "missing") is False


class TestInsecureDownload:
    """Tests for CA bundle detection."""

    def test_certifi_bundle_present(self, tmp_path):
        bundle = tmp_path / "cacert.pem"
        bundle.write_text("cert")

        with patch.object(system.certifi, "where", return_value=str(bundle)):
            assert system.insecure_download_required() is False

    def test_no_bundle_anywhere(self, tmp_path):
        with patch.object(system.certifi, "where", return_value=str(tmp_path / "missing.pem")), \
                patch.object(system.ssl, "get_default_verify_paths") as mock_paths:
            mock_paths.return_value.cafile = None
            mock_paths.return_value.capath = str(tmp_path / "missing-dir")
            assert system.insecure_download_required() is True

    def test_system_ca_directory(self, tmp_path):
        with patch.object(system.certifi, "where", return_value=str(tmp_path / "missing.pem")), \
                patch.object(system.ssl, "get_default_verify_paths") as mock_paths:
            mock_paths.return_value.cafile = None
            mock_paths.return_value.capath = str(tmp_path)
            assert system.insecure_download_required() is False

    def test_warning_names_resource(self):
        assert "formula.jws.json" in system.insecure_download_warning("formula.jws.json")
