import re
from typing import Annotated

from pydantic import AfterValidator

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+$")


def _single_address(value: str) -> str:
    # blank is left to the services, which answer 400 for missing fields
    value = value.strip()
    if value and not _EMAIL_RE.match(value):
        raise ValueError("must be a single e-mail address")
    return value


# plain str (not EmailStr) to allow .local and other dev domains
ContactEmail = Annotated[str, AfterValidator(_single_address)]
