"""Background workers for the fiscal invoicing service"""
from .chain_auditor import FiscalChainAuditorWorker

__all__ = ["FiscalChainAuditorWorker"]
