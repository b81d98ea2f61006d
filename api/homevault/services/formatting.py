"""Display helpers shared by the list responses."""
from homevault.models.owner import VerificationStatus

_KB = 1024
_MB = 1024 * 1024

# status -> (badge colour, badge text)
_BADGES: dict[VerificationStatus, tuple[str, str]] = {
    VerificationStatus.VERIFIED: ("green", "Verified"),
    VerificationStatus.PENDING: ("yellow", "Pending"),
    VerificationStatus.REJECTED: ("red", "Rejected"),
}


def format_file_size(num_bytes: int) -> str:
    if num_bytes < _KB:
        return f"{num_bytes} B"
    if num_bytes < _MB:
        return f"{num_bytes / _KB:.1f} KB"
    return f"{num_bytes / _MB:.1f} MB"


def format_category(code: str) -> str:
    """``property_deed`` -> ``Property Deed``."""
    return " ".join(word[:1].upper() + word[1:] for word in code.split("_"))


def format_property_type(code: str) -> str:
    return code[:1].upper() + code[1:]


def verification_badge(status: VerificationStatus) -> tuple[str, str]:
    return _BADGES[status]
