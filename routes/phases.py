from typing import Optional

from fastapi import APIRouter, Depends

from db.database import get_db
from models.template import PhaseReorder
from utils.auth import Identity, get_identity
from utils.templates import reorder_phase

router = APIRouter()


@router.post("/reorder")
async def reorder_learning_phase(
    move: PhaseReorder,
    conn=Depends(get_db),
    identity: Optional[Identity] = Depends(get_identity),
):
    """Move a phase one step up or down within its option."""
    return reorder_phase(conn, move.option_id, move.phase_id, move.direction, identity)
