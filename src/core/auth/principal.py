from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from src.core.auth.models import Admin, PrincipalKind

if TYPE_CHECKING:
    from src.modules.residents.models import Resident


@dataclass(frozen=True)
class Principal:
    """Authenticated caller, resolved once per request from the bearer token."""

    kind: PrincipalKind
    identity: Union[Admin, "Resident"]

    @property
    def id(self) -> int:
        return self.identity.id
