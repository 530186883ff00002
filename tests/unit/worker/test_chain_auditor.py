"""Unit tests for FiscalChainAuditorWorker

Tests cover:
- Worker initialization with configuration
- run_once verifies every tenant in its own session
- Audit disabled scenario
- Broken and failing tenants are counted separately
- Shutdown and cleanup
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from datetime import datetime

from libs.result import Error, Return
from src.worker.chain_auditor import FiscalChainAuditorWorker
from src.app.use_cases.invoicing.dtos import ChainBreakDTO, ChainVerificationResultDTO


def verification(tenant_id, breaks=()):
    return ChainVerificationResultDTO(
        tenant_id=tenant_id,
        documents_checked=3,
        intact=not breaks,
        breaks=list(breaks),
        halted=bool(breaks),
        verified_at=datetime.utcnow(),
        duration_seconds=0.01,
    )


@pytest.fixture
def mock_session_factory():
    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock()
    return MagicMock(return_value=session)


class TestFiscalChainAuditorWorkerInit:
    @patch("src.worker.chain_auditor.ApplicationConfig")
    @patch("src.worker.chain_auditor.create_async_engine")
    def test_initializes_with_default_config(self, mock_create_engine, mock_app_config):
        # Arrange
        mock_app_config.DB_URI = "postgresql+asyncpg://default@localhost/db"
        mock_create_engine.return_value = MagicMock()

        # Act
        worker = FiscalChainAuditorWorker()

        # Assert
        assert worker.db_uri == "postgresql+asyncpg://default@localhost/db"
        mock_create_engine.assert_called_once()

    @patch("src.worker.chain_auditor.create_async_engine")
    def test_initializes_with_custom_db_uri(self, mock_create_engine):
        mock_create_engine.return_value = MagicMock()

        worker = FiscalChainAuditorWorker(db_uri="sqlite+aiosqlite:///./audit.db")

        assert worker.db_uri == "sqlite+aiosqlite:///./audit.db"


@pytest.mark.asyncio
class TestFiscalChainAuditorWorkerRunOnce:
    @patch("src.worker.chain_auditor.ApplicationConfig")
    @patch("src.worker.chain_auditor.VerifyFiscalChain")
    @patch("src.worker.chain_auditor.SqlAlchemyUnitOfWork")
    @patch("src.worker.chain_auditor.SqlAlchemyInvoiceRepository")
    @patch("src.worker.chain_auditor.SqlAlchemyFiscalChainRepository")
    @patch("src.worker.chain_auditor.create_async_engine")
    @patch("src.worker.chain_auditor.sessionmaker")
    async def test_run_once_verifies_every_tenant(
        self,
        mock_sessionmaker,
        mock_create_engine,
        mock_chain_repo_class,
        mock_invoice_repo_class,
        mock_uow_class,
        mock_use_case_class,
        mock_app_config,
        mock_session_factory,
    ):
        # Arrange
        mock_app_config.DB_URI = "postgresql+asyncpg://test@localhost/db"
        mock_app_config.CHAIN_AUDIT_ENABLED = True
        mock_sessionmaker.return_value = mock_session_factory
        mock_create_engine.return_value = MagicMock()

        mock_chain_repo = MagicMock()
        mock_chain_repo.list_tenant_ids = AsyncMock(return_value=["tenant_1", "tenant_2", "tenant_3"])
        mock_chain_repo_class.return_value = mock_chain_repo

        chain_break = ChainBreakDTO(
            invoice_id="inv_2",
            number="F-2026-000002",
            chain_position=2,
            kind="fingerprint_mismatch",
            detail="recorded fingerprint does not match the document fields",
        )
        mock_use_case = MagicMock()
        mock_use_case.execute = AsyncMock(
            side_effect=[
                Return.ok(verification("tenant_1")),
                Return.ok(verification("tenant_2", [chain_break])),
                Return.err(Error(code="VERIFY_CHAIN_FAILED", message="Failed to verify fiscal chain")),
            ]
        )
        mock_use_case_class.return_value = mock_use_case

        # Act
        worker = FiscalChainAuditorWorker()
        summary = await worker.run_once()

        # Assert
        assert summary.tenants_checked == 2
        assert summary.tenants_broken == 1
        assert summary.tenants_failed == 1
        assert [r.tenant_id for r in summary.results] == ["tenant_1", "tenant_2"]
        assert mock_use_case.execute.call_count == 3
        # One session for the tenant list, one per tenant
        assert mock_session_factory.call_count == 4

    @patch("src.worker.chain_auditor.ApplicationConfig")
    @patch("src.worker.chain_auditor.VerifyFiscalChain")
    @patch("src.worker.chain_auditor.create_async_engine")
    async def test_run_once_skips_when_disabled(
        self, mock_create_engine, mock_use_case_class, mock_app_config
    ):
        mock_app_config.DB_URI = "postgresql+asyncpg://test@localhost/db"
        mock_app_config.CHAIN_AUDIT_ENABLED = False
        mock_create_engine.return_value = MagicMock()

        worker = FiscalChainAuditorWorker()
        summary = await worker.run_once()

        assert summary.tenants_checked == 0
        assert summary.results == []
        mock_use_case_class.assert_not_called()


@pytest.mark.asyncio
class TestFiscalChainAuditorWorkerShutdown:
    @patch("src.worker.chain_auditor.create_async_engine")
    async def test_shutdown_disposes_engine(self, mock_create_engine):
        mock_engine = MagicMock()
        mock_engine.dispose = AsyncMock()
        mock_create_engine.return_value = mock_engine

        worker = FiscalChainAuditorWorker(db_uri="sqlite+aiosqlite:///./audit.db")
        await worker.shutdown()

        mock_engine.dispose.assert_called_once()
