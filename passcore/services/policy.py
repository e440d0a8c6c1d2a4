from __future__ import annotations

from typing import Iterable, Optional

from ..ad.models import ApiErrorCode, ApiErrorItem


def _names(items: Iterable[str]) -> set[str]:
    return {(x or "").strip().casefold() for x in items if (x or "").strip()}


def validate_groups(
    restricted_groups: Iterable[str],
    allowed_groups: Iterable[str],
    user_groups: Iterable[str],
) -> Optional[ApiErrorItem]:
    """Check group policy for a principal.

    Restricted groups win over allowed groups: a member of any restricted
    group is rejected even if it is also in an allowed group. With a
    non-empty allowed list the principal must be in at least one of them.
    Group names are compared case-insensitively.
    """
    restricted = _names(restricted_groups)
    allowed = _names(allowed_groups)
    if not restricted and not allowed:
        return None

    member_of = _names(user_groups)

    if restricted and member_of & restricted:
        return ApiErrorItem(ApiErrorCode.CHANGE_NOT_PERMITTED, "The User principal is listed as restricted")

    if allowed and not (member_of & allowed):
        return ApiErrorItem(ApiErrorCode.CHANGE_NOT_PERMITTED, "The User principal is not listed as allowed")

    return None
