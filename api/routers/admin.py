"""Admin API router: schema and store status for operational tooling."""

from fastapi import APIRouter, Depends

from api.models.schemas import SchemaStatus, TableCounts
from api.services.database import DatabaseService, get_db_service
from src.database import format_bytes, get_row_counts
from src.database.maintenance import FILE_SIZE_KEY

router = APIRouter()


@router.get("/schema", response_model=SchemaStatus)
async def get_schema_status(service: DatabaseService = Depends(get_db_service)):
    """Current vs target schema version. Never migrates."""
    engine = service.engine
    current = engine.current_version()
    report = engine.last_report

    return {
        "current_version": current,
        "target_version": engine.target_version,
        "up_to_date": current == engine.target_version,
        "migrated_at_startup": bool(report and report.migrated),
        "last_migration": report.summary() if report else None,
    }


@router.get("/table-counts", response_model=TableCounts)
async def get_table_counts(service: DatabaseService = Depends(get_db_service)):
    """Row counts for every declared table."""
    counts = get_row_counts(service.db)
    file_size = counts.pop(FILE_SIZE_KEY)

    return {
        "tables": counts,
        "file_size_bytes": file_size,
        "file_size": format_bytes(file_size),
    }
