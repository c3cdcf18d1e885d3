"""File endpoints: upload, listing, download, delete and signed sharing."""

from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ..database import get_db_session
from ..exceptions import FileNotFoundInProjectError, ForbiddenError
from ..logger import logger
from ..middleware.auth.dependencies import (
  Principal,
  get_current_principal,
  get_services,
  get_session_principal,
)
from ..models.api.common import ErrorResponse, SuccessResponse
from ..models.api.files import (
  FileListResponse,
  FileResponse,
  ShareFileRequest,
  ShareFileResponse,
)
from ..models.iam import ProjectFile
from ..security import SecurityAuditLogger, SecurityEventType
from ..services import ServiceContainer
from .access import get_file, get_managed_file, get_owned_project

router = APIRouter(tags=["Files"])


def _to_response(file: ProjectFile) -> FileResponse:
  return FileResponse(
    id=file.id,
    filename=file.filename,
    object_name=file.object_name,
    project_id=file.project_id,
    bucket=file.bucket,
    size=file.size,
    content_type=file.content_type,
    uploaded_by=file.uploaded_by,
    created_at=file.created_at,
  )


def _stream_file(services: ServiceContainer, file: ProjectFile) -> StreamingResponse:
  blob = services.blob_store.get_object(file.bucket, file.object_name)
  return StreamingResponse(
    blob["body"].iter_chunks(),
    media_type=file.content_type,
    headers={
      "Content-Disposition": f"attachment; filename*=UTF-8''{quote(file.filename)}",
      "Content-Length": str(blob["content_length"] or file.size),
    },
  )


@router.post(
  "/projects/{project_id}/files",
  response_model=FileResponse,
  summary="Upload File",
  description=(
    "Upload a file into a project's bucket. The content type is detected from "
    "the file's leading bytes, falling back to the declared type."
  ),
  status_code=status.HTTP_201_CREATED,
  operation_id="uploadFile",
  responses={404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def upload_file(
  project_id: str,
  file: UploadFile = File(...),
  principal: Principal = Depends(get_current_principal),
  services: ServiceContainer = Depends(get_services),
  db: Session = Depends(get_db_session),
) -> FileResponse:
  get_owned_project(project_id, principal, db)
  record = services.saga.upload_file(
    project_id=project_id,
    filename=file.filename,
    stream=file.file,
    uploaded_by=principal.user_id,
    declared_content_type=file.content_type,
  )
  return _to_response(record)


@router.get(
  "/projects/{project_id}/files",
  response_model=FileListResponse,
  summary="List Project Files",
  operation_id="listProjectFiles",
)
def list_project_files(
  project_id: str,
  principal: Principal = Depends(get_current_principal),
  db: Session = Depends(get_db_session),
) -> FileListResponse:
  get_owned_project(project_id, principal, db)
  files = ProjectFile.get_by_project(project_id, db)
  return FileListResponse(files=[_to_response(f) for f in files])


@router.get(
  "/files",
  response_model=FileListResponse,
  summary="List My Uploads",
  operation_id="listUserFiles",
)
def list_user_files(
  principal: Principal = Depends(get_session_principal),
  db: Session = Depends(get_db_session),
) -> FileListResponse:
  files = ProjectFile.get_by_uploader(principal.user_id, db)
  return FileListResponse(files=[_to_response(f) for f in files])


@router.get(
  "/files/download-signed",
  summary="Download via Signed Link",
  description=(
    "Public download using a signed link token. Links cannot be revoked and "
    "remain valid until they expire."
  ),
  operation_id="downloadSignedFile",
  responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def download_signed(
  token: str = Query(..., description="Signed link token"),
  services: ServiceContainer = Depends(get_services),
  db: Session = Depends(get_db_session),
) -> StreamingResponse:
  claims = services.signed_urls.verify(token)
  file = ProjectFile.get_by_id(claims.file_id, db)
  if file is None or file.bucket != claims.bucket:
    raise FileNotFoundInProjectError(claims.file_id)
  logger.info(f"Signed download of file {file.id}")
  return _stream_file(services, file)


@router.get(
  "/files/{file_id}",
  response_model=FileResponse,
  summary="Get File",
  operation_id="getFile",
  responses={404: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def get_file_metadata(
  file_id: str,
  principal: Principal = Depends(get_session_principal),
  db: Session = Depends(get_db_session),
) -> FileResponse:
  return _to_response(get_managed_file(file_id, principal, db))


@router.get(
  "/files/{file_id}/download",
  summary="Download File",
  description="Direct download, available to the user who uploaded the file.",
  operation_id="downloadFile",
  responses={404: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def download_file(
  file_id: str,
  principal: Principal = Depends(get_session_principal),
  services: ServiceContainer = Depends(get_services),
  db: Session = Depends(get_db_session),
) -> StreamingResponse:
  file = get_file(file_id, db)
  if file.uploaded_by != principal.user_id:
    SecurityAuditLogger.log_authorization_denied(
      user_id=principal.user_id, resource=f"file:{file_id}", action="download"
    )
    raise ForbiddenError("Only the uploader can download this file directly")
  return _stream_file(services, file)


@router.delete(
  "/files/{file_id}",
  response_model=SuccessResponse,
  summary="Delete File",
  operation_id="deleteFile",
  responses={404: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def delete_file(
  file_id: str,
  principal: Principal = Depends(get_session_principal),
  services: ServiceContainer = Depends(get_services),
  db: Session = Depends(get_db_session),
) -> SuccessResponse:
  get_managed_file(file_id, principal, db)
  file = services.saga.delete_file(file_id)
  return SuccessResponse(
    message="File deleted successfully",
    data={"file_id": file.id, "object_name": file.object_name},
  )


@router.post(
  "/files/{file_id}/share",
  response_model=ShareFileResponse,
  summary="Share File",
  description=(
    "Issue a signed download link. The link is a bearer capability: it cannot "
    "be revoked and stays valid until expires_at."
  ),
  operation_id="shareFile",
  responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def share_file(
  file_id: str,
  request: ShareFileRequest,
  principal: Principal = Depends(get_session_principal),
  services: ServiceContainer = Depends(get_services),
  db: Session = Depends(get_db_session),
) -> ShareFileResponse:
  file = get_managed_file(file_id, principal, db)
  link = services.signed_urls.issue(file.id, file.bucket, request.expires_at)
  SecurityAuditLogger.log_security_event(
    event_type=SecurityEventType.SIGNED_URL_ISSUED,
    user_id=principal.user_id,
    details={"file_id": file.id, "expires_at": link.expires_at.isoformat()},
    risk_level="low",
  )
  return ShareFileResponse(url=link.url, token=link.token, expires_at=link.expires_at)
