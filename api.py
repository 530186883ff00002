"""HTTP entry point of the fiscal invoicing service

Run with `python api.py` or `uvicorn api:app`. The chain audit worker runs
separately: `python -m src.worker.chain_auditor`.
"""

import uvicorn
from config import ApplicationConfig
from src.api.app import create_app

app = create_app(ApplicationConfig)

if __name__ == "__main__":
    uvicorn.run(
        "api:app",
        host=ApplicationConfig.API_HOST,
        port=ApplicationConfig.API_PORT,
        reload=True,
        log_level=ApplicationConfig.LOG_LEVEL.lower(),
    )
