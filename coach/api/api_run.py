from fastapi import FastAPI, Depends
import logging

from coach.api.routes import assign
from coach.api.routes.assign import Services, get_services, check_kind, http_error
from coach.events.web_observers import start as start_event_observers
from coach.logic.assignment.errors import TransportError

# Logging
logger = logging.getLogger("coach_app")

# Initialize FastAPI app
app = FastAPI(title="Template Assignment API")

# Include routers
app.include_router(assign.router)


@app.on_event("startup")
def _startup_web_observers():
    """Register event bus subscribers for assignment notifications when the app starts."""
    start_event_observers()
    logger.info("Web observers for assignment events started")


@app.get("/health")
def health():
    return {"status": "ok"}


# -------------------- Catalog --------------------
@app.get("/api/templates/{kind}")
async def list_templates(kind: str, services: Services = Depends(get_services)):
    """Template catalog for a resource kind (display only, authored elsewhere)."""
    kind = check_kind(kind)
    try:
        templates = await services.gateway.list_templates(kind)
    except TransportError as e:
        raise http_error(e)
    return [t.to_dict() for t in templates]


@app.get("/api/templates/{kind}/{template_id}/assignments")
async def template_assignments(kind: str, template_id: str, services: Services = Depends(get_services)):
    """Clients that already hold a clone of the template."""
    from coach.logic.assignment.flow import load_existing_plans
    from coach.logic.assignment.index import build_index

    kind = check_kind(kind)
    try:
        template = await services.gateway.get_template(kind, template_id)
        plans = await load_existing_plans(services.gateway, services.cache, kind)
    except TransportError as e:
        raise http_error(e)
    index = build_index(template, plans)
    return {
        "templateKey": index.template_key,
        "assignedClientIds": sorted(index.assigned_client_ids),
        "assignedClientNames": index.assigned_client_names,
        "count": len(index.assigned_client_ids),
    }
