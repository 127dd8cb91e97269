"""Vault Router - Folder and file operations on the user's vault."""

from dataclasses import asdict

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from brainflow.auth.middleware import get_current_user
from brainflow.models.schemas import VaultMoveRequest, VaultPathRequest, VaultWriteRequest
from brainflow.services.dependencies import get_vault_service
from brainflow.services.vault_service import (
    InvalidPathError,
    VaultFileNotFoundError,
    VaultService,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/vault", tags=["Vault"])


async def _vault_for(current_user: dict) -> VaultService:
    return await get_vault_service(str(current_user["id"]))


@router.get("/files")
async def list_files(
    path: str = Query(default="/"),
    current_user: dict = Depends(get_current_user),
):
    """List the immediate children of a vault directory."""
    try:
        vault = await _vault_for(current_user)
        return {"path": path, "items": await vault.list_files(path)}
    except Exception as e:
        logger.error("Vault: Error listing files", path=path, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/file")
async def read_file(
    path: str = Query(...),
    current_user: dict = Depends(get_current_user),
):
    try:
        vault = await _vault_for(current_user)
        return {"path": path, "content": await vault.read_file(path)}
    except VaultFileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error("Vault: Error reading file", path=path, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/file")
async def write_file(
    request: VaultWriteRequest,
    current_user: dict = Depends(get_current_user),
):
    """Write a file; Markdown files are synchronized into the note graph."""
    try:
        vault = await _vault_for(current_user)
        sync_result = await vault.write_file(request.path, request.content)
        return {
            "status": "written",
            "path": request.path,
            "sync": asdict(sync_result) if sync_result else None,
        }
    except InvalidPathError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("Vault: Error writing file", path=request.path, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/directories")
async def create_directory(
    request: VaultPathRequest,
    current_user: dict = Depends(get_current_user),
):
    try:
        vault = await _vault_for(current_user)
        await vault.create_directory(request.path)
        return {"status": "created", "path": request.path}
    except Exception as e:
        logger.error("Vault: Error creating directory", path=request.path, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/move")
async def move_file(
    request: VaultMoveRequest,
    current_user: dict = Depends(get_current_user),
):
    try:
        vault = await _vault_for(current_user)
        await vault.move_file(request.source, request.destination)
        return {"status": "moved", "source": request.source, "destination": request.destination}
    except VaultFileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidPathError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("Vault: Error moving file", source=request.source, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/search")
async def search_files(
    query: str = Query(..., min_length=1),
    current_user: dict = Depends(get_current_user),
):
    try:
        vault = await _vault_for(current_user)
        return {"query": query, "files": await vault.search_files(query)}
    except Exception as e:
        logger.error("Vault: Error searching files", query=query, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))
