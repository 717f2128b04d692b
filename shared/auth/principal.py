"""Principal autenticado que llega a los servicios"""
from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class Principal:
    user_id: UUID
    role: str
    username: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
