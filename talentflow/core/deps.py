"""
FastAPI dependencies shared by the endpoints.

The upload queue is a single long-lived object created in the application
lifespan and kept on ``app.state``.
"""

from fastapi import HTTPException, Request, status

from talentflow.services.upload_queue import UploadQueue


def get_upload_queue(request: Request) -> UploadQueue:
    """
    Return the application's upload queue.

    Raises:
        HTTPException 503: If the queue has not been started
    """
    queue = getattr(request.app.state, "upload_queue", None)
    if queue is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Upload queue is not running"
        )
    return queue
