from __future__ import annotations

from dataclasses import replace
import logging
import uuid
from typing import Iterable

from control_combustible.core.errors import AuthenticationError
from control_combustible.domain.models import Account, Role
from control_combustible.domain.ports import AccountRepository
from control_combustible.domain.services import ValidacionError, validar_email
from control_combustible.domain.time_utils import now_iso

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """Login local y gestión de cuentas. La credencial se guarda y compara en claro."""

    def __init__(self, accounts: AccountRepository) -> None:
        self._accounts = accounts

    def login(self, email: str, credential: str) -> Account:
        account = self._accounts.get_by_email(_normalize_email(email))
        if account is None or account.credential != credential:
            logger.info("Login rechazado para %s", email)
            raise AuthenticationError("Email o contraseña incorrectos.")
        logger.info("Login correcto: %s (%s)", account.email, account.role.value)
        return account

    def list_accounts(self) -> list[Account]:
        return self._accounts.list_all()

    def create_account(
        self,
        *,
        name: str,
        email: str,
        credential: str,
        role: Role,
        permitted_site_ids: Iterable[str] = (),
    ) -> Account:
        normalized = _normalize_email(email)
        self._validate(name=name, email=normalized, credential=credential)
        if self._accounts.get_by_email(normalized) is not None:
            raise ValidacionError(f"Ya existe una cuenta con el email {normalized}.")
        account = Account(
            id=str(uuid.uuid4()),
            name=name.strip(),
            email=normalized,
            credential=credential,
            role=role,
            permitted_site_ids=tuple(permitted_site_ids),
            created_at=now_iso(),
        )
        self._accounts.create(account)
        logger.info("Cuenta creada: %s (%s)", account.email, account.role.value)
        return account

    def update_account(self, account: Account) -> Account:
        normalized = _normalize_email(account.email)
        self._validate(name=account.name, email=normalized, credential=account.credential)
        existing = self._accounts.get_by_email(normalized)
        if existing is not None and existing.id != account.id:
            raise ValidacionError(f"Ya existe una cuenta con el email {normalized}.")
        current = self._accounts.get_by_id(account.id)
        if current is None:
            raise ValidacionError(f"Cuenta no encontrada: {account.id}")
        if current.is_admin and account.role is not Role.ADMIN and self._is_last_admin():
            raise ValidacionError("No se puede quitar el rol de administrador a la última cuenta administradora.")
        return self._accounts.update(replace(account, email=normalized))

    def delete_account(self, account_id: str) -> None:
        account = self._accounts.get_by_id(account_id)
        if account is None:
            return
        if account.is_admin and self._is_last_admin():
            raise ValidacionError("No se puede eliminar la última cuenta administradora.")
        self._accounts.delete(account_id)
        logger.info("Cuenta eliminada: %s", account.email)

    def _is_last_admin(self) -> bool:
        return sum(1 for item in self._accounts.list_all() if item.is_admin) == 1

    @staticmethod
    def _validate(*, name: str, email: str, credential: str) -> None:
        if not name.strip():
            raise ValidacionError("El nombre es obligatorio.")
        validar_email(email)
        if not credential:
            raise ValidacionError("La contraseña es obligatoria.")
