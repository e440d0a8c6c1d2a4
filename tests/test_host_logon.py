from unittest.mock import patch

from impacket.nt_errors import STATUS_LOGON_FAILURE, STATUS_PASSWORD_EXPIRED, STATUS_PASSWORD_MUST_CHANGE
from impacket.smbconnection import SessionError

from passcore.host_logon import LogonResult, network_logon


def test_successful_logon():
    with patch("passcore.host_logon.SMBConnection") as smb:
        result = network_logon("dc1.corp.example.com", "corp.example.com", "jdoe", "OldPass123!")

    assert result.success is True
    smb.return_value.login.assert_called_once_with("jdoe", "OldPass123!", "corp.example.com")
    smb.return_value.close.assert_called_once()


def test_wrong_password():
    with patch("passcore.host_logon.SMBConnection") as smb:
        smb.return_value.login.side_effect = SessionError(STATUS_LOGON_FAILURE)
        result = network_logon("dc1.corp.example.com", "corp.example.com", "jdoe", "Wrong!")

    assert result.success is False
    assert result.error_code == STATUS_LOGON_FAILURE
    assert result.password_correct is False


def test_must_change_counts_as_correct_password():
    with patch("passcore.host_logon.SMBConnection") as smb:
        smb.return_value.login.side_effect = SessionError(STATUS_PASSWORD_MUST_CHANGE)
        result = network_logon("dc1.corp.example.com", "corp.example.com", "jdoe", "OldPass123!")

    assert result.success is False
    assert result.password_correct is True


def test_unreachable_host():
    with patch("passcore.host_logon.SMBConnection", side_effect=OSError("Connection refused")):
        result = network_logon("dc1.corp.example.com", "corp.example.com", "jdoe", "OldPass123!")

    assert result == LogonResult(success=False, error_code=0, message="Connection refused")
    assert result.password_correct is False


def test_expired_status():
    assert LogonResult(success=False, error_code=STATUS_PASSWORD_EXPIRED).password_correct is True
