from __future__ import annotations

import logging
import sqlite3
import uuid

from control_combustible.domain.models import Account, Role
from control_combustible.domain.time_utils import now_iso
from control_combustible.infrastructure.repos_sqlite import AccountRepositorySQLite
from control_combustible.infrastructure.sqlite_uow import transaccion

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_NAME = "Administrador"
DEFAULT_ADMIN_EMAIL = "master@controlcombustible.local"
DEFAULT_ADMIN_CREDENTIAL = "admin"


def ensure_admin_account(connection: sqlite3.Connection) -> Account | None:
    """Crea la cuenta ADMIN inicial si la tabla de cuentas está vacía.

    Devuelve la cuenta creada o None si ya existían cuentas.
    """
    repository = AccountRepositorySQLite(connection)
    with transaccion(connection):
        if repository.count():
            return None
        account = Account(
            id=str(uuid.uuid4()),
            name=DEFAULT_ADMIN_NAME,
            email=DEFAULT_ADMIN_EMAIL,
            credential=DEFAULT_ADMIN_CREDENTIAL,
            role=Role.ADMIN,
            permitted_site_ids=(),
            created_at=now_iso(),
        )
        repository.create(account)
    logger.info("Cuenta administradora inicial creada: %s", DEFAULT_ADMIN_EMAIL)
    return account
