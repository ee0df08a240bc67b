"""Multipart upload handling shared by the ingestion and import endpoints."""

from fastapi import HTTPException, UploadFile, status

from pith_workbench.ingestion import BufferedFile

CHUNK_SIZE = 1024 * 1024


async def read_upload(file: UploadFile, max_size_bytes: int) -> BufferedFile:
    """Read an upload into memory, rejecting it once it exceeds the size limit."""
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "missing_filename",
                "message": "Uploaded file has no name",
                "details": {},
            },
        )

    chunks = []
    size_bytes = 0
    while chunk := await file.read(CHUNK_SIZE):
        size_bytes += len(chunk)
        if size_bytes > max_size_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail={
                    "error": "file_too_large",
                    "message": f"File exceeds maximum size of {max_size_bytes} bytes",
                    "details": {"max_size_bytes": max_size_bytes, "file_name": file.filename},
                },
            )
        chunks.append(chunk)

    return BufferedFile(name=file.filename, data=b"".join(chunks))
