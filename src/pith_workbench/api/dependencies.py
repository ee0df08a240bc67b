"""FastAPI dependencies for API endpoints.

The workbench context is created by the application lifespan and stored on
`app.state`; endpoints receive it through the `Workbench` dependency.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from pith_workbench.context import WorkbenchContext


def get_context(request: Request) -> WorkbenchContext:
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "service_starting",
                "message": "Workbench context is not available yet",
                "details": {},
            },
        )
    return context


Workbench = Annotated[WorkbenchContext, Depends(get_context)]
