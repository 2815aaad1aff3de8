import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query
from pydantic import BaseModel
from starlette.responses import StreamingResponse

from siteaudit.exceptions import (
    AuditAlreadyRunningError,
    AuditNotFoundError,
    InvalidTransitionError,
    SiteAuditError,
    ValidationError,
)
from siteaudit.services.audit_service import AuditService
from siteaudit.services.page_query import PageFilter

logger = logging.getLogger(__name__)


class StartAuditRequest(BaseModel):
    name: Optional[str] = None
    baseUrl: Optional[str] = None
    clientId: Optional[str] = None
    crawlSettings: Optional[Dict[str, Any]] = None


def to_http_error(e: SiteAuditError) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, AuditNotFoundError):
        return HTTPException(status_code=404, detail="audit not found")
    if isinstance(e, (InvalidTransitionError, AuditAlreadyRunningError)):
        return HTTPException(status_code=409, detail=str(e))
    logger.error("Unhandled audit error: %s", e, exc_info=e)
    return HTTPException(status_code=500, detail="internal error")


def create_audits_router(audit_service: AuditService):
    router = APIRouter(prefix="/audits", tags=["Audits"])

    def launcher(background_tasks: BackgroundTasks):
        def launch(fn, *args):
            background_tasks.add_task(fn, *args)
        return launch

    @router.get("")
    def list_audits(
        clientId: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        sortBy: str = "created_at",
        sortOrder: str = "desc",
        page: int = 1,
        limit: int = 20,
    ):
        try:
            return audit_service.list_audits(
                client_id=clientId,
                status=status,
                search=search,
                sort_by=sortBy,
                sort_order=sortOrder,
                page=page,
                limit=limit,
            )
        except SiteAuditError as e:
            raise to_http_error(e)

    @router.get("/dashboard")
    def dashboard(clientId: Optional[str] = None):
        return audit_service.dashboard(clientId)

    @router.get("/active")
    def list_active():
        return {"active": audit_service.list_active()}

    @router.post("", status_code=201)
    def start_audit(req: StartAuditRequest, background_tasks: BackgroundTasks):
        try:
            run = audit_service.start_audit(req.model_dump(), launcher(background_tasks))
        except SiteAuditError as e:
            raise to_http_error(e)
        return run.to_dict(include_pages=False)

    @router.get("/{run_id}")
    def get_audit(run_id: int, includePages: bool = True):
        try:
            return audit_service.get(run_id, include_pages=includePages).to_dict(include_pages=includePages)
        except SiteAuditError as e:
            raise to_http_error(e)

    @router.get("/{run_id}/pages")
    def get_pages(
        run_id: int,
        statusCode: Optional[List[int]] = Query(None),
        search: Optional[str] = None,
        issueType: Optional[str] = None,
        sortBy: str = "url",
        sortOrder: str = "asc",
        page: int = 1,
        limit: int = 50,
    ):
        try:
            flt = PageFilter(
                status_codes=list(statusCode or []),
                search=search,
                issue_type=issueType,
                sort_by=sortBy,
                sort_order=sortOrder,
                page=page,
                limit=limit,
            )
            return audit_service.get_pages(run_id, flt)
        except SiteAuditError as e:
            raise to_http_error(e)

    @router.get("/{run_id}/summary")
    def get_summary(run_id: int):
        try:
            return audit_service.get_summary(run_id)
        except SiteAuditError as e:
            raise to_http_error(e)

    @router.get(
        "/{run_id}/export",
        responses={
            200: {
                "content": {"text/csv": {"schema": {"type": "string", "format": "binary"}}},
                "description": "CSV with one row per crawled page",
            }
        },
    )
    def export(run_id: int):
        try:
            run, lines = audit_service.export_csv(run_id)
        except SiteAuditError as e:
            raise to_http_error(e)
        filename = f"audit-{run.run_id}.csv"
        return StreamingResponse(
            (line.encode("utf-8") for line in lines),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @router.post("/{run_id}/pause")
    def pause(run_id: int):
        try:
            run = audit_service.pause(run_id)
        except SiteAuditError as e:
            raise to_http_error(e)
        return {"status": run.status.value, "run_id": run_id}

    @router.post("/{run_id}/resume")
    def resume(run_id: int, background_tasks: BackgroundTasks):
        try:
            run = audit_service.resume(run_id, launcher(background_tasks))
        except SiteAuditError as e:
            raise to_http_error(e)
        return {"status": run.status.value, "run_id": run_id}

    @router.post("/{run_id}/stop")
    def stop(run_id: int):
        try:
            run = audit_service.stop(run_id)
        except SiteAuditError as e:
            raise to_http_error(e)
        return {"status": run.status.value, "run_id": run_id}

    @router.delete("/{run_id}")
    def delete(run_id: int):
        try:
            audit_service.delete(run_id)
        except SiteAuditError as e:
            raise to_http_error(e)
        return {"status": "deleted", "run_id": run_id}

    return router
