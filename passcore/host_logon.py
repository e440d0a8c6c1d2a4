"""Network logon check against a domain controller over SMB.

This is the fallback credential check: an NTLM session setup either succeeds,
or fails with an NTSTATUS code that tells a wrong password apart from a
correct password on an account that may not log on yet.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from impacket.nmb import NetBIOSError, NetBIOSTimeout
from impacket.nt_errors import STATUS_PASSWORD_EXPIRED, STATUS_PASSWORD_MUST_CHANGE
from impacket.smbconnection import SMBConnection, SessionError

log = logging.getLogger(__name__)

# The DC only reports these after the password itself was verified.
PASSWORD_CORRECT_STATUSES = frozenset({STATUS_PASSWORD_MUST_CHANGE, STATUS_PASSWORD_EXPIRED})


@dataclass
class LogonResult:
    success: bool
    error_code: int = 0
    message: str = ""

    @property
    def password_correct(self) -> bool:
        return self.success or self.error_code in PASSWORD_CORRECT_STATUSES


def network_logon(target: str, domain: str, username: str, password: str, timeout_s: int = 7) -> LogonResult:
    smb: SMBConnection | None = None
    try:
        smb = SMBConnection(remoteName=target, remoteHost=target, sess_port=445, timeout=timeout_s)
        smb.login(username, password, domain)
        return LogonResult(success=True)
    except SessionError as e:
        code = int(e.getErrorCode())
        log.debug("SMB logon %s\\%s on %s failed: 0x%08x", domain, username, target, code)
        return LogonResult(success=False, error_code=code, message=str(e))
    except (OSError, NetBIOSError, NetBIOSTimeout) as e:
        log.debug("SMB logon on %s failed: %s", target, e)
        return LogonResult(success=False, message=str(e))
    finally:
        if smb is not None:
            try:
                smb.close()
            except (SessionError, OSError):
                pass
