"""
Permission API routes.

Exposes the catalog, single access checks for the current user, and a
stateless editor endpoint that replays checkbox edits on a draft so clients
get the same cascade and gate behaviour as the server.
"""
from typing import List
from fastapi import APIRouter, Depends

from app.features.permissions.catalog import PermissionCatalog
from app.features.permissions.dependencies import require_admin
from app.features.permissions.editor import RoleEditor
from app.features.permissions.errors import describe
from app.features.permissions.schemas import (
    EditOutcomeResponse,
    EditorApplyRequest,
    EditorApplyResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
    PermissionGroupResponse,
)
from app.features.session.context import SessionContext
from app.features.users.dependencies import get_catalog, require_session
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter()


@router.get("/catalog", response_model=List[PermissionGroupResponse])
async def get_catalog_groups(
    include_unimplemented: bool = False,
    catalog: PermissionCatalog = Depends(get_catalog),
    session: SessionContext = Depends(require_session)
):
    """Permission groups offered to the role editor."""
    return catalog.to_json(include_unimplemented=include_unimplemented and session.is_admin())


@router.post("/check", response_model=PermissionCheckResponse)
async def check_permission(
    check_request: PermissionCheckRequest,
    session: SessionContext = Depends(require_session)
):
    """Check if the current user holds a module or action permission."""
    if check_request.group == "modules":
        allowed = session.has_module_access(check_request.action)
    else:
        allowed = session.has_permission(check_request.group, check_request.action)

    return PermissionCheckResponse(
        has_permission=allowed,
        reason=None if allowed else "Permission denied"
    )


@router.post("/editor/apply", response_model=EditorApplyResponse)
async def apply_editor_operations(
    body: EditorApplyRequest,
    catalog: PermissionCatalog = Depends(get_catalog),
    session: SessionContext = Depends(require_admin)
):
    """
    Replay edits on a draft.

    Rejected edits are reported per step and do not stop the replay; the
    returned draft always satisfies the module rule.
    """
    editor = RoleEditor(catalog, body.permissions)
    results = []
    for operation in body.operations:
        if operation.op == "set":
            result = editor.set_permission(operation.group, operation.key, operation.value)
        else:
            result = editor.toggle_all_in_group(operation.group)
        if not result.ok:
            log.debug(f"Editor rejected {operation.op} {operation.group}.{operation.key}: {result.kind}")
        results.append(EditOutcomeResponse(**describe(result)))

    return EditorApplyResponse(permissions=editor.commit().to_json(), results=results)
