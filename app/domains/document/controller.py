"""CV and quiz generation endpoints (multipart uploads)."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_db, get_default_gateway
from app.domains.document.service import DocumentService
from app.exceptions.base import ValidationError
from app.schemas.document import CvResponse, QuizResponse
from app.services.llm_gateway import BaseLLMGateway
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["documents"])

PDF_CONTENT_TYPES = {"application/pdf", "application/x-pdf"}


async def read_pdf_upload(upload: Optional[UploadFile], field: str) -> bytes:
    """Read an uploaded PDF, rejecting other file types."""
    if upload is None:
        raise ValidationError(f"The '{field}' file is required")

    is_pdf = (upload.content_type or "").lower() in PDF_CONTENT_TYPES or (
        upload.filename or ""
    ).lower().endswith(".pdf")
    if not is_pdf:
        raise ValidationError(f"The '{field}' file must be a PDF", details={"content_type": upload.content_type})

    data = await upload.read()
    if not data:
        raise ValidationError(f"The '{field}' file is empty")
    return data


@router.post("/cv", response_model=CvResponse)
async def generate_cv(
    cv: UploadFile = File(..., description="Current CV as PDF"),
    offre: Optional[str] = Form(None, description="Job description text"),
    offre_file: Optional[UploadFile] = File(None, description="Job description as PDF"),
    poste: Optional[str] = Form(None, description="Target position"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: BaseLLMGateway = Depends(get_default_gateway),
):
    """Tailor the uploaded CV to a job offer and draft a cover letter."""
    service = DocumentService(db, gateway)
    cv_data = await read_pdf_upload(cv, "cv")
    offre_data = await read_pdf_upload(offre_file, "offre_file") if offre_file else None
    job_description = await service.read_job_description(offre, offre_data)

    logger.info(f"Generating CV for user {current_user.id}")
    return await service.generate_cv(job_description, cv_data, poste)


@router.post("/quiz", response_model=QuizResponse)
async def generate_quiz(
    cv: UploadFile = File(..., description="Candidate CV as PDF"),
    offre: Optional[str] = Form(None, description="Job description text"),
    offre_file: Optional[UploadFile] = File(None, description="Job description as PDF"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: BaseLLMGateway = Depends(get_default_gateway),
):
    """Generate an interview quiz from a CV and a job offer."""
    service = DocumentService(db, gateway)
    cv_data = await read_pdf_upload(cv, "cv")
    offre_data = await read_pdf_upload(offre_file, "offre_file") if offre_file else None
    job_description = await service.read_job_description(offre, offre_data)

    logger.info(f"Generating quiz for user {current_user.id}")
    return await service.generate_quiz(cv_data, job_description)
