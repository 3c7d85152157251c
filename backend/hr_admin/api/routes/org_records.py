"""
Organization portal routes for HR records: master data, employees and
recruitment (candidates, applications, interviews, comments and the
status history).

Master data is one generic resource CRUD; the resource path segment must
name an organization-scoped lookup. Audit fields (created_by, updated_by)
are returned only to callers holding approve on the module.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from hr_admin.api.schemas.common import success_response
from hr_admin.api.schemas.records import (
    ApplicationCreate,
    ApplicationUpdate,
    CandidateCreate,
    CandidateUpdate,
    CommentCreate,
    CommentUpdate,
    EmployeeBulkStatus,
    EmployeeCreate,
    EmployeeUpdate,
    InterviewCreate,
    InterviewFeedback,
    InterviewUpdate,
    MasterDataCreate,
    MasterDataUpdate,
)
from hr_admin.constants.modules import OrgModuleCode, PermissionAction
from hr_admin.database.session import get_db_session
from hr_admin.models.recruitment import StatusEntity
from hr_admin.platform.errors import NotFoundError
from hr_admin.platform.policy import can_view_audit_info
from hr_admin.platform.rbac import (
    check_any_org_permission,
    check_module_enabled,
    check_org_permission,
    resolve_caller_grant,
)
from hr_admin.platform.tenant_context import TenantContext, get_tenant_context, resolve_tenant_context
from hr_admin.services.candidate_comment_service import CandidateCommentService
from hr_admin.services.employee_service import EmployeeService
from hr_admin.services.interview_service import InterviewService
from hr_admin.services.master_data_service import MasterDataService, parse_resource
from hr_admin.services.recruitment_service import RecruitmentService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/{org_slug}",
    tags=["organization"],
    dependencies=[Depends(resolve_tenant_context)],
)

MASTER_DATA = OrgModuleCode.MASTER_DATA
EMPLOYEES = OrgModuleCode.EMPLOYEES
RECRUITMENT = OrgModuleCode.RECRUITMENT


def _audit_visible(db: Session, tenant: TenantContext, module: OrgModuleCode) -> bool:
    return can_view_audit_info(resolve_caller_grant(db, tenant.user, module.value))


def _recruitment(action: Optional[PermissionAction] = None) -> List:
    """Recruitment is an add-on: it must be enabled even in support mode."""
    check = check_any_org_permission(RECRUITMENT) if action is None else check_org_permission(RECRUITMENT, action)
    return [Depends(check_module_enabled(RECRUITMENT)), Depends(check)]


# --- Master data ---


@router.get(
    "/master-data/{resource}",
    dependencies=[Depends(check_org_permission(MASTER_DATA, PermissionAction.READ))],
)
async def list_master_data(
    request: Request,
    resource: str,
    active_only: bool = Query(False),
    search: str = Query(None),
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    service = MasterDataService(db, parse_resource(resource, tenant.organization_id), tenant.organization_id)
    audit = _audit_visible(db, tenant, MASTER_DATA)
    records = service.list_records(active_only=active_only, search=search)
    return success_response([service.serialize(r, include_audit=audit) for r in records])


@router.post(
    "/master-data/{resource}",
    status_code=201,
    dependencies=[Depends(check_org_permission(MASTER_DATA, PermissionAction.WRITE))],
)
async def create_master_data(
    request: Request,
    resource: str,
    body: MasterDataCreate,
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    service = MasterDataService(db, parse_resource(resource, tenant.organization_id), tenant.organization_id)
    record = service.create_record(body.model_dump(), user_id=tenant.user_id)
    db.commit()
    return success_response(service.serialize(record), "Record created successfully")


@router.get(
    "/master-data/{resource}/{record_id}",
    dependencies=[Depends(check_org_permission(MASTER_DATA, PermissionAction.READ))],
)
async def get_master_data(request: Request, resource: str, record_id: str, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    service = MasterDataService(db, parse_resource(resource, tenant.organization_id), tenant.organization_id)
    record = service.get_record(record_id)
    return success_response(service.serialize(record, include_audit=_audit_visible(db, tenant, MASTER_DATA)))


@router.put(
    "/master-data/{resource}/{record_id}",
    dependencies=[Depends(check_org_permission(MASTER_DATA, PermissionAction.UPDATE))],
)
async def update_master_data(
    request: Request,
    resource: str,
    record_id: str,
    body: MasterDataUpdate,
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    service = MasterDataService(db, parse_resource(resource, tenant.organization_id), tenant.organization_id)
    record = service.update_record(record_id, body.model_dump(exclude_unset=True), user_id=tenant.user_id)
    db.commit()
    return success_response(service.serialize(record), "Record updated successfully")


@router.delete(
    "/master-data/{resource}/{record_id}",
    dependencies=[Depends(check_org_permission(MASTER_DATA, PermissionAction.DELETE))],
)
async def delete_master_data(request: Request, resource: str, record_id: str, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    MasterDataService(
        db, parse_resource(resource, tenant.organization_id), tenant.organization_id
    ).delete_record(record_id)
    db.commit()
    return success_response(None, "Record deleted successfully")


# --- Employees ---


@router.get("/employees", dependencies=[Depends(check_any_org_permission(EMPLOYEES))])
async def list_employees(
    request: Request,
    status: str = Query(None),
    department_id: str = Query(None),
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    service = EmployeeService(db, tenant.organization_id)
    audit = _audit_visible(db, tenant, EMPLOYEES)
    employees = service.list_employees(status=status, department_id=department_id)
    return success_response([service.serialize(e, include_audit=audit) for e in employees])


@router.get("/employees/export", dependencies=[Depends(check_org_permission(EMPLOYEES, PermissionAction.EXPORT))])
async def export_employees(request: Request, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    rows = EmployeeService(db, tenant.organization_id).export_rows()
    logger.info("Employees exported", extra={"org_id": tenant.organization_id, "user_id": tenant.user_id, "rows": len(rows)})
    return success_response(rows)


@router.patch(
    "/employees/bulk-status",
    dependencies=[Depends(check_org_permission(EMPLOYEES, PermissionAction.UPDATE))],
)
async def bulk_update_employee_status(request: Request, body: EmployeeBulkStatus, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    count = EmployeeService(db, tenant.organization_id).bulk_update_status(
        body.employee_ids, body.status, user_id=tenant.user_id
    )
    db.commit()
    return success_response({"count": count}, f"{count} employee(s) updated successfully")


@router.get("/employees/{employee_id}", dependencies=[Depends(check_org_permission(EMPLOYEES, PermissionAction.READ))])
async def get_employee(request: Request, employee_id: str, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    service = EmployeeService(db, tenant.organization_id)
    employee = service.get_employee(employee_id)
    return success_response(service.serialize(employee, include_audit=_audit_visible(db, tenant, EMPLOYEES)))


@router.post(
    "/employees",
    status_code=201,
    dependencies=[Depends(check_org_permission(EMPLOYEES, PermissionAction.WRITE))],
)
async def create_employee(request: Request, body: EmployeeCreate, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    service = EmployeeService(db, tenant.organization_id)
    employee = service.create_employee(body.model_dump(), user_id=tenant.user_id)
    db.commit()
    return success_response(service.serialize(employee), "Employee created successfully")


@router.put(
    "/employees/{employee_id}",
    dependencies=[Depends(check_org_permission(EMPLOYEES, PermissionAction.UPDATE))],
)
async def update_employee(
    request: Request,
    employee_id: str,
    body: EmployeeUpdate,
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    service = EmployeeService(db, tenant.organization_id)
    employee = service.update_employee(employee_id, body.model_dump(exclude_unset=True), user_id=tenant.user_id)
    db.commit()
    return success_response(service.serialize(employee), "Employee updated successfully")


@router.delete(
    "/employees/{employee_id}",
    dependencies=[Depends(check_org_permission(EMPLOYEES, PermissionAction.DELETE))],
)
async def delete_employee(request: Request, employee_id: str, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    EmployeeService(db, tenant.organization_id).delete_employee(employee_id)
    db.commit()
    return success_response(None, "Employee deleted successfully")


# --- Recruitment ---


@router.get("/recruitment/candidates", dependencies=_recruitment())
async def list_candidates(request: Request, status: str = Query(None), db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    service = RecruitmentService(db, tenant.organization_id)
    audit = _audit_visible(db, tenant, RECRUITMENT)
    return success_response([service.serialize_candidate(c, include_audit=audit) for c in service.list_candidates(status)])


@router.get("/recruitment/candidates/{candidate_id}", dependencies=_recruitment(PermissionAction.READ))
async def get_candidate(request: Request, candidate_id: str, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    service = RecruitmentService(db, tenant.organization_id)
    candidate = service.get_candidate(candidate_id)
    return success_response(service.serialize_candidate(candidate, include_audit=_audit_visible(db, tenant, RECRUITMENT)))


@router.post("/recruitment/candidates", status_code=201, dependencies=_recruitment(PermissionAction.WRITE))
async def create_candidate(request: Request, body: CandidateCreate, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    service = RecruitmentService(db, tenant.organization_id)
    candidate = service.create_candidate(body.model_dump(), user_id=tenant.user_id)
    db.commit()
    return success_response(service.serialize_candidate(candidate), "Candidate created successfully")


@router.put("/recruitment/candidates/{candidate_id}", dependencies=_recruitment(PermissionAction.UPDATE))
async def update_candidate(
    request: Request,
    candidate_id: str,
    body: CandidateUpdate,
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    service = RecruitmentService(db, tenant.organization_id)
    candidate = service.update_candidate(candidate_id, body.model_dump(exclude_unset=True), user_id=tenant.user_id)
    db.commit()
    return success_response(service.serialize_candidate(candidate), "Candidate updated successfully")


@router.delete("/recruitment/candidates/{candidate_id}", dependencies=_recruitment(PermissionAction.DELETE))
async def delete_candidate(request: Request, candidate_id: str, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    RecruitmentService(db, tenant.organization_id).delete_candidate(candidate_id)
    db.commit()
    return success_response(None, "Candidate deleted successfully")


@router.get("/recruitment/applications", dependencies=_recruitment())
async def list_applications(
    request: Request,
    candidate_id: str = Query(None),
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    service = RecruitmentService(db, tenant.organization_id)
    return success_response([service.serialize_application(a) for a in service.list_applications(candidate_id)])


@router.post("/recruitment/applications", status_code=201, dependencies=_recruitment(PermissionAction.WRITE))
async def create_application(request: Request, body: ApplicationCreate, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    service = RecruitmentService(db, tenant.organization_id)
    application = service.create_application(body.model_dump(), user_id=tenant.user_id)
    db.commit()
    return success_response(service.serialize_application(application), "Application created successfully")


@router.put("/recruitment/applications/{application_id}", dependencies=_recruitment(PermissionAction.UPDATE))
async def update_application(
    request: Request,
    application_id: str,
    body: ApplicationUpdate,
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    service = RecruitmentService(db, tenant.organization_id)
    application = service.update_application(
        application_id, body.model_dump(exclude_unset=True), user_id=tenant.user_id
    )
    candidate = service.get_candidate(application.candidate_id)
    db.commit()
    return success_response(
        {"application": service.serialize_application(application), "candidate_status": candidate.status},
        "Application updated successfully",
    )


@router.delete("/recruitment/applications/{application_id}", dependencies=_recruitment(PermissionAction.DELETE))
async def delete_application(request: Request, application_id: str, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    RecruitmentService(db, tenant.organization_id).delete_application(application_id, user_id=tenant.user_id)
    db.commit()
    return success_response(None, "Application deleted successfully")


_HISTORY_ENTITIES = {
    "candidates": StatusEntity.CANDIDATE,
    "applications": StatusEntity.APPLICATION,
    "interviews": StatusEntity.INTERVIEW,
}


@router.get("/recruitment/{collection}/{entity_id}/status-history", dependencies=_recruitment(PermissionAction.READ))
async def get_status_history(request: Request, collection: str, entity_id: str, db: Session = Depends(get_db_session)):
    """Status transitions of a candidate, application or interview, newest first."""
    tenant = get_tenant_context(request)
    entity = _HISTORY_ENTITIES.get(collection)
    if entity is None:
        raise NotFoundError("Resource not found", code="resource_not_found")

    service = RecruitmentService(db, tenant.organization_id)
    if entity is StatusEntity.CANDIDATE:
        service.get_candidate(entity_id)
    elif entity is StatusEntity.APPLICATION:
        service.get_application(entity_id)
    else:
        InterviewService(db, tenant.organization_id).get_interview(entity_id)
    history = service.status_history(entity.value, entity_id)
    return success_response([service.serialize_status_change(e) for e in history])


# --- Interviews ---


@router.get("/recruitment/interviews", dependencies=_recruitment())
async def list_interviews(
    request: Request,
    status: str = Query(None),
    interviewer_id: str = Query(None),
    application_id: str = Query(None),
    candidate_id: str = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    service = InterviewService(db, tenant.organization_id)
    audit = _audit_visible(db, tenant, RECRUITMENT)
    interviews = service.list_interviews(
        status=status,
        interviewer_id=interviewer_id,
        application_id=application_id,
        candidate_id=candidate_id,
        date_from=date_from,
        date_to=date_to,
    )
    return success_response([service.serialize(i, include_audit=audit) for i in interviews])


@router.get("/recruitment/interviews/my-interviews", dependencies=_recruitment())
async def list_my_interviews(
    request: Request,
    status: str = Query(None),
    upcoming: bool = Query(False),
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    service = InterviewService(db, tenant.organization_id)
    interviews = service.list_for_interviewer(tenant.user_id, status=status, upcoming=upcoming)
    return success_response([service.serialize(i) for i in interviews])


@router.post("/recruitment/interviews", status_code=201, dependencies=_recruitment(PermissionAction.WRITE))
async def schedule_interview(request: Request, body: InterviewCreate, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    service = InterviewService(db, tenant.organization_id)
    interview = service.schedule_interview(body.model_dump(), user_id=tenant.user_id)
    db.commit()
    return success_response(service.serialize(interview), "Interview scheduled successfully")


@router.get("/recruitment/interviews/{interview_id}", dependencies=_recruitment(PermissionAction.READ))
async def get_interview(request: Request, interview_id: str, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    service = InterviewService(db, tenant.organization_id)
    interview = service.get_interview(interview_id)
    return success_response(service.serialize(interview, include_audit=_audit_visible(db, tenant, RECRUITMENT)))


@router.put("/recruitment/interviews/{interview_id}", dependencies=_recruitment(PermissionAction.UPDATE))
async def update_interview(
    request: Request,
    interview_id: str,
    body: InterviewUpdate,
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    service = InterviewService(db, tenant.organization_id)
    interview = service.update_interview(interview_id, body.model_dump(exclude_unset=True), user_id=tenant.user_id)
    db.commit()
    return success_response(service.serialize(interview), "Interview schedule updated successfully")


@router.patch("/recruitment/interviews/{interview_id}/feedback", dependencies=_recruitment(PermissionAction.UPDATE))
async def submit_interview_feedback(
    request: Request,
    interview_id: str,
    body: InterviewFeedback,
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    service = InterviewService(db, tenant.organization_id)
    interview = service.submit_feedback(interview_id, body.model_dump(), user_id=tenant.user_id)
    db.commit()
    db.refresh(interview)
    return success_response(service.serialize(interview), "Feedback submitted successfully")


@router.delete("/recruitment/interviews/{interview_id}", dependencies=_recruitment(PermissionAction.DELETE))
async def cancel_interview(request: Request, interview_id: str, db: Session = Depends(get_db_session)):
    tenant = get_tenant_context(request)
    InterviewService(db, tenant.organization_id).delete_interview(interview_id)
    db.commit()
    return success_response(None, "Interview schedule cancelled successfully")


# --- Candidate comments ---


@router.get("/recruitment/candidates/{candidate_id}/comments", dependencies=_recruitment())
async def list_candidate_comments(
    request: Request,
    candidate_id: str,
    section_key: str = Query(None),
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    return success_response(
        CandidateCommentService(db, tenant.organization_id).list_comments(candidate_id, section_key)
    )


@router.post(
    "/recruitment/candidates/{candidate_id}/comments",
    status_code=201,
    dependencies=_recruitment(PermissionAction.WRITE),
)
async def create_candidate_comment(
    request: Request,
    candidate_id: str,
    body: CommentCreate,
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    service = CandidateCommentService(db, tenant.organization_id)
    comment = service.create_comment(candidate_id, body.model_dump(), user_id=tenant.user_id)
    db.commit()
    return success_response(service.serialize(comment), "Comment added successfully")


@router.put(
    "/recruitment/candidates/{candidate_id}/comments/{comment_id}",
    dependencies=_recruitment(PermissionAction.WRITE),
)
async def update_candidate_comment(
    request: Request,
    candidate_id: str,
    comment_id: str,
    body: CommentUpdate,
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    service = CandidateCommentService(db, tenant.organization_id)
    comment = service.update_comment(
        candidate_id, comment_id, body.model_dump(exclude_unset=True), user_id=tenant.user_id
    )
    db.commit()
    return success_response(service.serialize(comment), "Comment updated successfully")


@router.delete(
    "/recruitment/candidates/{candidate_id}/comments/{comment_id}",
    dependencies=_recruitment(PermissionAction.WRITE),
)
async def delete_candidate_comment(
    request: Request,
    candidate_id: str,
    comment_id: str,
    db: Session = Depends(get_db_session),
):
    tenant = get_tenant_context(request)
    CandidateCommentService(db, tenant.organization_id).delete_comment(candidate_id, comment_id, user_id=tenant.user_id)
    db.commit()
    return success_response(None, "Comment deleted successfully")
