"""
Code execution API endpoints
"""
import asyncio
from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel, Field
from typing import Any, Dict, List

from core.config import get_settings
from core.executor import ExecutionScheduler
from core.executor_setup import get_scheduler
from utils.auth import verify_api_key

router = APIRouter(prefix="/execute", tags=["execution"])

class ExecuteRequest(BaseModel):
    """Code execution request"""
    code: str = Field("", description="Source code to execute")
    language: str = Field(..., description="Language tag, e.g. python3 or nodejs")

class ExecuteResponse(BaseModel):
    """Code execution response"""
    success: bool
    output: str
    error: str

class LanguageInfo(BaseModel):
    """Supported language and runtime availability"""
    language: str
    available: bool

@router.post("/", response_model=ExecuteResponse)
async def execute_code(
    request: ExecuteRequest,
    api_key: str = Depends(verify_api_key),
    scheduler: ExecutionScheduler = Depends(get_scheduler),
):
    """Execute code in a short-lived interpreter process"""

    # Failures (timeouts, unsupported languages, runtime errors) are results, not HTTP errors
    result = await scheduler.execute(request.code, request.language)
    return ExecuteResponse(**result.to_dict())

@router.post("/batch", response_model=List[ExecuteResponse])
async def execute_batch(
    requests: List[ExecuteRequest],
    api_key: str = Depends(verify_api_key),
    scheduler: ExecutionScheduler = Depends(get_scheduler),
):
    """Execute multiple code snippets concurrently, subject to the worker limit"""

    max_batch_size = get_settings().max_batch_size
    if len(requests) > max_batch_size:
        raise HTTPException(
            status_code=400,
            detail=f"Maximum {max_batch_size} executions allowed in a batch"
        )

    results = await asyncio.gather(
        *(scheduler.execute(request.code, request.language) for request in requests)
    )

    return [ExecuteResponse(**result.to_dict()) for result in results]

@router.get("/languages", response_model=List[LanguageInfo])
async def get_supported_languages(
    scheduler: ExecutionScheduler = Depends(get_scheduler),
):
    """Get supported language tags and whether their runtime is installed"""
    return [
        LanguageInfo(language=language, available=available)
        for language, available in scheduler.supported_languages().items()
    ]

@router.get("/metrics")
async def get_execution_metrics(
    api_key: str = Depends(verify_api_key),
    scheduler: ExecutionScheduler = Depends(get_scheduler),
) -> Dict[str, Any]:
    """Get scheduler execution metrics"""
    metrics = await scheduler.get_metrics()
    return metrics.to_dict()

@router.get("/health")
async def health_check(
    scheduler: ExecutionScheduler = Depends(get_scheduler),
):
    """Health check endpoint"""
    status = await scheduler.health_check()
    return {
        "status": "healthy" if status.healthy else "unavailable",
        "service": "codepool",
        "version": get_settings().app_version,
        "scheduler": status.to_dict(),
    }
