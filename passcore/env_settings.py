from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

from .ad_utils import split_names


class PasswordChangeOptions(BaseSettings):
    # Directory
    ldap_hostnames: str = Field("", alias="LDAP_HOSTNAMES")  # ';' separated
    ldap_port: int = Field(636, alias="LDAP_PORT")
    ldap_use_ssl: bool = Field(True, alias="LDAP_USE_SSL")
    ldap_starttls: bool = Field(False, alias="LDAP_STARTTLS")
    ldap_tls_validate: bool = Field(False, alias="LDAP_TLS_VALIDATE")
    ldap_username: str = Field("", alias="LDAP_USERNAME")
    ldap_password: str = Field("", alias="LDAP_PASSWORD")
    default_domain: str = Field("", alias="DEFAULT_DOMAIN")

    # Use the process credentials (Kerberos ticket cache) instead of the service account
    use_automatic_context: bool = Field(False, alias="USE_AUTOMATIC_CONTEXT")

    # Policy
    restricted_ad_groups: str = Field("", alias="RESTRICTED_AD_GROUPS")  # ';' separated
    allowed_ad_groups: str = Field("", alias="ALLOWED_AD_GROUPS")  # ';' separated
    id_type_for_user: str = Field("", alias="ID_TYPE_FOR_USER")

    # SMB network logon fallback
    logon_timeout_s: int = Field(7, alias="LOGON_TIMEOUT_S")

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_retention_days: int = Field(30, alias="LOG_RETENTION_DAYS")
    log_max_size_mb: int = Field(50, alias="LOG_MAX_SIZE_MB")

    model_config = SettingsConfigDict(populate_by_name=True, frozen=True)

    @property
    def hostnames(self) -> list[str]:
        return split_names(self.ldap_hostnames)

    @property
    def restricted_groups(self) -> list[str]:
        return split_names(self.restricted_ad_groups)

    @property
    def allowed_groups(self) -> list[str]:
        return split_names(self.allowed_ad_groups)


@lru_cache(maxsize=1)
def get_options() -> PasswordChangeOptions:
    return PasswordChangeOptions()
