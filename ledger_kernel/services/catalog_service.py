"""
CatalogService -- account subjects and partners (master data).

Responsibility:
    Seeds and looks up the chart of accounts and the partner list.  In the
    wider system these are maintained by external collaborators; the kernel
    only needs to read them, plus an idempotent seed for fresh databases.

Architecture position:
    Kernel > Services -- imperative shell.  ``seed_from_config`` accepts any
    object exposing ``accounts`` and ``fiscal_years`` sequences (the
    ``ledger_config.LedgerConfig`` shape) without importing the config
    package.

Invariants enforced:
    - Account codes and partner codes are unique.
    - Tag fields are parsed into closed enums at this boundary.
    - Seeding never modifies an existing row: rows whose code (or year)
      already exists are skipped.
"""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import AccountInfo, PartnerInfo
from ledger_kernel.domain.validation import parse_enum, require_text
from ledger_kernel.domain.values import AccountRole, AccountType
from ledger_kernel.exceptions import AccountNotFoundError, InvalidValueError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import AccountSubject
from ledger_kernel.models.partner import Partner
from ledger_kernel.repositories.account_repository import AccountRepository
from ledger_kernel.repositories.fiscal_year_repository import FiscalYearRepository
from ledger_kernel.repositories.partner_repository import PartnerRepository
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.fiscal_year_service import FiscalYearService

logger = get_logger("services.catalog")


class CatalogService(BaseService[AccountSubject]):
    """
    Service for chart-of-accounts and partner master data.

    Contract:
        Create methods flush and return DTOs.  Duplicate codes raise
        InvalidValueError before any INSERT is attempted.

    Non-goals:
        - Does NOT delete accounts or partners.
    """

    def __init__(self, session: Session):
        super().__init__(session)
        self._accounts = AccountRepository(session)
        self._partners = PartnerRepository(session)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType | str,
        created_by: str,
        role: AccountRole | str = AccountRole.NONE,
        name_en: str | None = None,
        is_tax_related: bool = False,
        is_active: bool = True,
        parent_code: str | None = None,
    ) -> AccountInfo:
        code = require_text(code, "code", max_length=20)
        if self._accounts.get_by_code(code) is not None:
            raise InvalidValueError("code", code)

        parent_id: UUID | None = None
        level = 1
        if parent_code is not None:
            parent = self._accounts.get_by_code(parent_code)
            if parent is None:
                raise AccountNotFoundError(parent_code)
            parent_id = parent.id
            level = parent.level + 1

        account = AccountSubject(
            code=code,
            name=require_text(name, "name", max_length=200),
            name_en=name_en,
            account_type=parse_enum(AccountType, account_type, "account_type"),
            role=parse_enum(AccountRole, role, "role"),
            is_tax_related=is_tax_related,
            is_active=is_active,
            level=level,
            parent_id=parent_id,
            created_by=require_text(created_by, "created_by"),
        )
        self._accounts.add(account, flush=True)
        logger.info(
            "account_created",
            extra={
                "account_code": code,
                "account_type": account.account_type.value,
                "role": account.role.value,
            },
        )
        return AccountInfo.from_model(account)

    def get_account_by_code(self, code: str) -> AccountInfo:
        account = self._accounts.get_by_code(code)
        if account is None:
            raise AccountNotFoundError(code)
        return AccountInfo.from_model(account)

    def list_accounts(
        self,
        account_type: AccountType | str | None = None,
        search: str | None = None,
    ) -> list[AccountInfo]:
        """Accounts ordered by code; search matches code or names."""
        parsed_type = (
            parse_enum(AccountType, account_type, "account_type")
            if account_type is not None
            else None
        )
        return [
            AccountInfo.from_model(account)
            for account in self._accounts.list_accounts(account_type=parsed_type, search=search)
        ]

    def deactivate_account(self, code: str, actor: str) -> AccountInfo:
        account = self._accounts.get_by_code(code)
        if account is None:
            raise AccountNotFoundError(code)
        account.is_active = False
        account.updated_by = require_text(actor, "actor")
        self.session.flush()
        logger.info("account_deactivated", extra={"account_code": code})
        return AccountInfo.from_model(account)

    # ------------------------------------------------------------------
    # Partners
    # ------------------------------------------------------------------

    def create_partner(self, code: str, name: str, created_by: str) -> PartnerInfo:
        code = require_text(code, "code", max_length=50)
        if self._partners.get_by_code(code) is not None:
            raise InvalidValueError("code", code)
        partner = Partner(
            code=code,
            name=require_text(name, "name", max_length=200),
            created_by=require_text(created_by, "created_by"),
        )
        self._partners.add(partner, flush=True)
        logger.info("partner_created", extra={"partner_code": code})
        return PartnerInfo.from_model(partner)

    def list_partners(self, active_only: bool = False) -> list[PartnerInfo]:
        return [
            PartnerInfo.from_model(partner)
            for partner in self._partners.list_partners(active_only=active_only)
        ]

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def seed_from_config(self, config: Any, actor: str) -> dict[str, int]:
        """
        Load the configured chart of accounts and fiscal years.

        Parents are created before children as long as the configuration
        lists them first.  Existing codes and years are left untouched, so
        the call is safe to repeat.

        Returns:
            Counts of rows created: {"accounts": n, "fiscal_years": m}.
        """
        created_accounts = 0
        for seed in config.accounts:
            if self._accounts.get_by_code(seed.code) is not None:
                continue
            self.create_account(
                code=seed.code,
                name=seed.name,
                account_type=seed.account_type,
                role=seed.role,
                name_en=seed.name_en,
                is_tax_related=seed.is_tax_related,
                parent_code=seed.parent_code,
                created_by=actor,
            )
            created_accounts += 1

        years = FiscalYearRepository(self.session)
        fiscal_years = FiscalYearService(self.session)
        created_years = 0
        for seed in config.fiscal_years:
            if years.get_by_year(seed.year) is not None:
                continue
            fiscal_years.create_fiscal_year(
                year=seed.year,
                start_date=seed.start_date,
                end_date=seed.end_date,
                created_by=actor,
                is_closed=seed.is_closed,
            )
            created_years += 1

        logger.info(
            "catalog_seeded",
            extra={"accounts": created_accounts, "fiscal_years": created_years},
        )
        return {"accounts": created_accounts, "fiscal_years": created_years}
