"""Account subject lookups by id, code, type and netting role."""

from sqlalchemy import or_, select

from ledger_kernel.domain.values import AccountRole, AccountType
from ledger_kernel.models.account import AccountSubject
from ledger_kernel.repositories.base import BaseRepository


class AccountRepository(BaseRepository[AccountSubject]):
    model = AccountSubject

    def get_by_code(self, code: str) -> AccountSubject | None:
        return self.session.execute(
            select(AccountSubject).where(AccountSubject.code == code)
        ).scalar_one_or_none()

    def list_accounts(
        self,
        account_type: AccountType | None = None,
        search: str | None = None,
        active_only: bool = False,
    ) -> list[AccountSubject]:
        """Accounts ordered by code, optionally filtered."""
        stmt = select(AccountSubject)
        if account_type is not None:
            stmt = stmt.where(AccountSubject.account_type == account_type)
        if active_only:
            stmt = stmt.where(AccountSubject.is_active.is_(True))
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    AccountSubject.code.ilike(pattern),
                    AccountSubject.name.ilike(pattern),
                    AccountSubject.name_en.ilike(pattern),
                )
            )
        return list(self.session.execute(stmt.order_by(AccountSubject.code)).scalars())

    def active_with_role(self, role: AccountRole) -> list[AccountSubject]:
        return list(
            self.session.execute(
                select(AccountSubject)
                .where(
                    AccountSubject.role == role,
                    AccountSubject.is_active.is_(True),
                )
                .order_by(AccountSubject.code)
            ).scalars()
        )

    def get_many(self, account_ids) -> dict:
        """Accounts keyed by id for the given ids (missing ids are absent)."""
        ids = set(account_ids)
        if not ids:
            return {}
        rows = self.session.execute(
            select(AccountSubject).where(AccountSubject.id.in_(ids))
        ).scalars()
        return {row.id: row for row in rows}
