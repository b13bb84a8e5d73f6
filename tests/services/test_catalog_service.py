"""
CatalogService tests: chart of accounts, partners, config seeding.
"""

import pytest

from ledger_config import DEFAULT_CONFIG_PATH
from ledger_config.loader import load_config
from ledger_kernel.domain.values import AccountRole, AccountType
from ledger_kernel.exceptions import AccountNotFoundError, InvalidValueError
from ledger_kernel.repositories.account_repository import AccountRepository
from ledger_kernel.repositories.partner_repository import PartnerRepository


class TestAccounts:
    def test_create_account_parses_tags(self, catalog_service, test_actor_id):
        info = catalog_service.create_account(
            code="1100",
            name="Accounts receivable",
            account_type="asset",
            role="receivable",
            created_by=test_actor_id,
        )
        assert info.account_type is AccountType.ASSET
        assert info.role is AccountRole.RECEIVABLE
        assert info.is_active
        assert info.level == 1

    def test_duplicate_code_rejected(self, catalog_service, standard_accounts, test_actor_id):
        with pytest.raises(InvalidValueError) as exc_info:
            catalog_service.create_account("1010", "Petty cash", "ASSET", test_actor_id)
        assert exc_info.value.field == "code"

    def test_unknown_type_rejected(self, catalog_service, test_actor_id):
        with pytest.raises(InvalidValueError):
            catalog_service.create_account("9000", "Suspense", "MEMO", test_actor_id)

    def test_child_account_level(self, catalog_service, standard_accounts, test_actor_id):
        child = catalog_service.create_account(
            "1011", "Cash in till", "ASSET", test_actor_id, parent_code="1010"
        )
        assert child.level == 2
        assert child.parent_id == standard_accounts["1010"].id

    def test_unknown_parent(self, catalog_service, test_actor_id):
        with pytest.raises(AccountNotFoundError):
            catalog_service.create_account("1011", "Cash in till", "ASSET", test_actor_id, parent_code="0000")

    def test_get_by_code(self, catalog_service, standard_accounts):
        assert catalog_service.get_account_by_code("4100").name == "Sales"
        with pytest.raises(AccountNotFoundError):
            catalog_service.get_account_by_code("0000")

    def test_list_filters(self, catalog_service, standard_accounts):
        expenses = catalog_service.list_accounts(account_type="EXPENSE")
        assert [a.code for a in expenses] == ["5100", "5200"]
        found = catalog_service.list_accounts(search="payable")
        assert [a.code for a in found] == ["2100", "2400"]

    def test_deactivate(self, catalog_service, standard_accounts, test_actor_id):
        info = catalog_service.deactivate_account("5200", test_actor_id)
        assert not info.is_active


class TestPartners:
    def test_create_and_list(self, catalog_service, partners):
        listed = catalog_service.list_partners()
        assert [(p.code, p.name) for p in listed] == [
            ("P1", "Acme Trading"),
            ("P2", "Globex Supply"),
        ]

    def test_duplicate_partner_code(self, catalog_service, partners, test_actor_id):
        with pytest.raises(InvalidValueError):
            catalog_service.create_partner("P1", "Other", test_actor_id)


class TestRepositories:
    def test_account_listing_filters(self, session, catalog_service, standard_accounts, test_actor_id):
        catalog_service.deactivate_account("5200", test_actor_id)
        accounts = AccountRepository(session)

        active = [a.code for a in accounts.list_accounts(active_only=True)]
        assert "5200" not in active
        assert active == sorted(active)
        assert [a.code for a in accounts.list_accounts(account_type=AccountType.EXPENSE)] == ["5100", "5200"]

    def test_partner_listing_filters(self, session, partners):
        repo = PartnerRepository(session)
        repo.get_by_code("P2").is_active = False
        session.flush()

        assert [p.code for p in repo.list_partners()] == ["P1", "P2"]
        assert [p.code for p in repo.list_partners(active_only=True)] == ["P1"]


class TestSeedFromConfig:
    def test_seeds_default_chart_and_year(self, catalog_service, fiscal_year_service, test_actor_id):
        config = load_config(DEFAULT_CONFIG_PATH)
        counts = catalog_service.seed_from_config(config, test_actor_id)

        assert counts == {"accounts": len(config.accounts), "fiscal_years": 1}
        assert catalog_service.get_account_by_code("1100").role is AccountRole.RECEIVABLE
        assert catalog_service.get_account_by_code("2400").is_tax_related
        assert [fy.year for fy in fiscal_year_service.list_fiscal_years()] == [2025]

    def test_seeding_twice_creates_nothing(self, catalog_service, test_actor_id):
        config = load_config(DEFAULT_CONFIG_PATH)
        catalog_service.seed_from_config(config, test_actor_id)
        assert catalog_service.seed_from_config(config, test_actor_id) == {
            "accounts": 0,
            "fiscal_years": 0,
        }
