"""Agent routes — agent records and their commission rollups."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from eduadmin.database import get_db
from eduadmin.middleware.auth import require_access, write_audit_log
from eduadmin.services.authorization import Principal
from eduadmin.services.commission_service import CommissionService
from eduadmin.services.errors import NotFoundError

router = APIRouter(prefix="/api/agents", tags=["agents"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------


class AgentCreate(BaseModel):
    name: str = Field(min_length=1)
    contact_person: str
    email: str
    phone: str | None = None
    location: str | None = None
    commission_rate: float = Field(0, ge=0, le=100)
    status: str = "Active"


class AgentUpdate(BaseModel):
    name: str | None = None
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    commission_rate: float | None = Field(None, ge=0, le=100)
    status: str | None = None


# ---------------------------------------------------------------------------
# AGENTS
# ---------------------------------------------------------------------------


@router.get("")
async def list_agents(
    status: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _user: Principal = Depends(require_access("/agents")),
):
    from eduadmin.models.agent import Agent, Student

    stmt = (
        select(Agent, func.count(Student.id).label("students_count"))
        .outerjoin(Student, Student.agent_id == Agent.id)
        .group_by(Agent.id)
        .order_by(Agent.created_at.desc(), Agent.id.desc())
    )
    if status:
        stmt = stmt.where(Agent.status == status)

    result = await db.execute(stmt)
    items = [
        {**agent.to_dict(), "students_count": students_count}
        for agent, students_count in result.all()
    ]
    return {"items": items, "total": len(items)}


@router.get("/commissions")
async def list_agent_commissions(
    db: AsyncSession = Depends(get_db),
    _user: Principal = Depends(require_access("/agents/payout")),
):
    """Commission rollup for every agent (the payout page)."""
    items = await CommissionService(db).compute_all_agent_commissions()
    return {"items": items, "total": len(items)}


@router.get("/{agent_id}")
async def get_agent(
    agent_id: int,
    db: AsyncSession = Depends(get_db),
    _user: Principal = Depends(require_access("/agents")),
):
    from eduadmin.models.agent import Agent

    agent = await db.get(Agent, agent_id)
    if not agent:
        raise HTTPException(status_code=404, detail="Agent not found")
    return agent.to_dict()


@router.get("/{agent_id}/commission")
async def get_agent_commission(
    agent_id: int,
    db: AsyncSession = Depends(get_db),
    _user: Principal = Depends(require_access("/agents")),
):
    try:
        snapshot = await CommissionService(db).compute_agent_commission(agent_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Agent not found")
    return {"agent_id": agent_id, **snapshot.to_dict()}


@router.post("", status_code=201)
async def create_agent(
    body: AgentCreate,
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(require_access("/agents/add")),
):
    from eduadmin.models.agent import Agent

    agent = Agent(**body.model_dump())
    db.add(agent)
    await db.flush()

    await write_audit_log(
        db,
        user,
        action="agent.create",
        resource_type="agent",
        resource_id=str(agent.id),
        details={"name": body.name, "commission_rate": body.commission_rate},
    )
    await db.commit()
    return agent.to_dict()


@router.put("/{agent_id}")
async def update_agent(
    agent_id: int,
    body: AgentUpdate,
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(require_access("/agents/edit")),
):
    from eduadmin.models.agent import Agent

    agent = await db.get(Agent, agent_id)
    if not agent:
        raise HTTPException(status_code=404, detail="Agent not found")

    changes = body.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(agent, field, value)

    await write_audit_log(
        db,
        user,
        action="agent.update",
        resource_type="agent",
        resource_id=str(agent_id),
        details=changes,
    )
    await db.commit()
    return agent.to_dict()
