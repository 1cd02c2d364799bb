from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shadanga.schemas.download import (
    Device,
    DeviceRegister,
    DownloadAuthorization,
    DownloadAuthorizeRequest,
    DownloadConfirm,
    DownloadKeyCheck,
    DownloadKeyRegister,
    DownloadStats,
    OfflineDownload,
    RevokeResult,
)
from shadanga.schemas.response import APIResponse
from shadanga.schemas.user import UserContext
from shadanga.services.download import download_service
from shadanga.utils import deps

router = APIRouter()

@router.post("/devices", status_code=status.HTTP_201_CREATED, response_model=APIResponse[Device])
def register_device(
    device_in: DeviceRegister,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    device = download_service.register_device(db, device_in=device_in, current_user_context=context)
    return APIResponse(message="Device registered successfully", data=Device.model_validate(device))

@router.get("/devices", response_model=APIResponse[List[Device]])
def get_my_devices(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    devices = download_service.get_my_devices(db, current_user_context=context)
    return APIResponse(message="Devices retrieved successfully", data=[Device.model_validate(d) for d in devices])

@router.post("/authorize/{lesson_id}", response_model=APIResponse[DownloadAuthorization])
def authorize_download(
    lesson_id: int,
    request: DownloadAuthorizeRequest,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    authorization = download_service.authorize(
        db, lesson_id=lesson_id, device_id=request.device_id, current_user_context=context
    )
    return APIResponse(message="Download authorized", data=authorization)

@router.post("/keys/{lesson_id}", status_code=status.HTTP_201_CREATED, response_model=APIResponse)
def register_download_key(
    lesson_id: int,
    key_in: DownloadKeyRegister,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    download_service.register_key(db, lesson_id=lesson_id, key_in=key_in, current_user_context=context)
    return APIResponse(message="Encryption key registered")

@router.post("/confirm/{lesson_id}", response_model=APIResponse)
def confirm_download(
    lesson_id: int,
    confirm_in: DownloadConfirm,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    download_service.confirm(db, lesson_id=lesson_id, confirm_in=confirm_in, current_user_context=context)
    return APIResponse(message="Download confirmed")

@router.post("/verify-key/{lesson_id}", response_model=APIResponse[DownloadKeyCheck])
def verify_download_key(
    lesson_id: int,
    key_in: DownloadKeyRegister,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    result = download_service.verify_key(db, lesson_id=lesson_id, key_in=key_in, current_user_context=context)
    return APIResponse(message="Key verified" if result.valid else "Key not recognised", data=result)

@router.get("/my", response_model=APIResponse[List[OfflineDownload]])
def get_my_downloads(
    device_id: Optional[str] = None,
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    downloads = download_service.get_my_downloads(db, current_user_context=context, device_id=device_id)
    return APIResponse(message="Downloads retrieved successfully", data=downloads)

@router.delete("/{lesson_id}", response_model=APIResponse)
def delete_download(
    lesson_id: int,
    device_id: str = Query(..., min_length=1),
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    download_service.delete(db, lesson_id=lesson_id, device_id=device_id, current_user_context=context)
    return APIResponse(message="Download removed")

@router.post("/admin/revoke/{user_id}", response_model=APIResponse[RevokeResult])
def revoke_user_downloads(
    user_id: int,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    result = download_service.revoke_user_downloads(db, user_id=user_id, current_user_context=context)
    return APIResponse(message=f"Revoked {result.revoked_count} download(s)", data=result)

@router.get("/admin/stats", response_model=APIResponse[DownloadStats])
def get_download_stats(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    stats = download_service.get_stats(db, current_user_context=context)
    return APIResponse(message="Download statistics retrieved successfully", data=stats)
