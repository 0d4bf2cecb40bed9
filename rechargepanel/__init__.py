"""
RechargePanel — phone top-up back office with a statistics core.

Architecture:
    rechargepanel/
    ├── api/             # FastAPI routers (HTTP layer)
    ├── db/              # SQLAlchemy models, engine, repositories
    ├── middleware/      # Error handling, request context
    ├── schemas/         # Pydantic request/response models
    ├── services/        # Ledger adapters, statistics service, fallback data, panels
    └── engine/          # Pure statistics core (time windows, aggregation, carriers)

Data Flow:
    selector → Time Window → Ledger reads (concurrent) → Aggregator → Snapshot
    Ledger unavailable → Fallback snapshot (flagged as such in the result envelope)

Version: 1.0.0
"""

__version__ = "1.0.0"
