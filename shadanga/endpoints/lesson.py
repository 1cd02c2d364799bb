from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from shadanga.schemas.access_code import (
    AccessCode,
    AccessCodeGenerate,
    AccessCodeInfo,
    AccessCodeToggle,
    AccessCodeToggleResult,
    AccessCodeVerifyRequest,
    AccessCodeVerifyResult,
)
from shadanga.schemas.lesson import Lesson, LessonCreate, LessonUpdate
from shadanga.schemas.lesson_progress import LessonComplete, LessonProgress
from shadanga.schemas.response import APIResponse
from shadanga.schemas.user import UserContext
from shadanga.services.access_code import access_code_service
from shadanga.services.lesson import lesson_service
from shadanga.services.lesson_progress import lesson_progress_service
from shadanga.utils import deps
from shadanga.utils.permission import PermissionHelper

router = APIRouter()

@router.post("/", status_code=status.HTTP_201_CREATED, response_model=APIResponse[Lesson])
def create_lesson(
    lesson_in: LessonCreate,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    new_lesson = lesson_service.create_lesson(db, lesson_in=lesson_in, current_user_context=context)
    return APIResponse(message="Lesson created successfully", data=Lesson.model_validate(new_lesson))

@router.get("/{lesson_id}", response_model=APIResponse[Lesson])
def get_lesson(
    lesson_id: int,
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    lesson = lesson_service.get_lesson(db, lesson_id=lesson_id)
    return APIResponse(message="Lesson retrieved successfully", data=Lesson.model_validate(lesson))

@router.put("/{lesson_id}", response_model=APIResponse[Lesson])
def update_lesson(
    lesson_id: int,
    lesson_in: LessonUpdate,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    updated_lesson = lesson_service.update_lesson(db, lesson_id=lesson_id, lesson_in=lesson_in, current_user_context=context)
    return APIResponse(message="Lesson updated successfully", data=Lesson.model_validate(updated_lesson))

@router.delete("/{lesson_id}", response_model=APIResponse)
def delete_lesson(
    lesson_id: int,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    response = lesson_service.delete_lesson(db, lesson_id=lesson_id, current_user_context=context)
    return APIResponse(message=response["message"])

# Access code management

@router.get("/{lesson_id}/access-code", response_model=APIResponse[AccessCodeInfo])
def get_access_code(
    lesson_id: int,
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    info = access_code_service.get_info(
        db, lesson_id=lesson_id, reveal_code=PermissionHelper.can_manage_lessons(context)
    )
    return APIResponse(message="Access code retrieved successfully", data=info)

@router.post("/{lesson_id}/access-code/generate", response_model=APIResponse[AccessCode])
def generate_access_code(
    lesson_id: int,
    request: AccessCodeGenerate,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    PermissionHelper.require_facilitator_or_admin(context)
    access_code = access_code_service.generate(
        db,
        lesson_id=lesson_id,
        code_type=request.code_type,
        expires_in_minutes=request.expires_in_minutes,
    )
    return APIResponse(message="Access code generated successfully", data=access_code)

@router.put("/{lesson_id}/access-code/toggle", response_model=APIResponse[AccessCodeToggleResult])
def toggle_access_code(
    lesson_id: int,
    request: AccessCodeToggle,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    PermissionHelper.require_facilitator_or_admin(context)
    result = access_code_service.toggle(db, lesson_id=lesson_id, enabled=request.enabled)
    state = "enabled" if result.access_code_enabled else "disabled"
    return APIResponse(message=f"Access code {state} for lesson", data=result)

@router.delete("/{lesson_id}/access-code", response_model=APIResponse)
def clear_access_code(
    lesson_id: int,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    PermissionHelper.require_facilitator_or_admin(context)
    access_code_service.clear(db, lesson_id=lesson_id)
    return APIResponse(message="Access code cleared successfully")

@router.post("/{lesson_id}/access-code/verify", response_model=APIResponse[AccessCodeVerifyResult])
def verify_access_code(
    lesson_id: int,
    request: AccessCodeVerifyRequest,
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    result = access_code_service.verify(db, lesson_id=lesson_id, submitted_code=request.code)
    return APIResponse(message=result.message, data=result)

# Playback progress

@router.post("/{lesson_id}/start", response_model=APIResponse[LessonProgress])
def start_lesson(
    lesson_id: int,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    progress = lesson_progress_service.start_lesson(db, lesson_id=lesson_id, current_user_context=context)
    return APIResponse(message="Lesson started", data=progress)

@router.post("/{lesson_id}/pause", response_model=APIResponse[LessonProgress])
def pause_lesson(
    lesson_id: int,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    progress = lesson_progress_service.record_pause(db, lesson_id=lesson_id, current_user_context=context)
    return APIResponse(message="Pause recorded", data=progress)

@router.post("/{lesson_id}/complete", response_model=APIResponse[LessonProgress])
def complete_lesson(
    lesson_id: int,
    request: Optional[LessonComplete] = None,
    db: Session = Depends(deps.get_transactional_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    progress = lesson_progress_service.complete_lesson(
        db,
        lesson_id=lesson_id,
        current_user_context=context,
        time_spent_seconds=request.time_spent_seconds if request else None,
    )
    return APIResponse(message="Lesson completed", data=progress)
