"""
System Router - liveness et déclenchement manuel.
Endpoints: /, /health, /trigger
"""
from fastapi import APIRouter, Request

from dealfinder.jobs import start_background_run

router = APIRouter(tags=["system"])


@router.get("/")
@router.get("/health")
def health():
    """Toujours "running", quel que soit le résultat des runs."""
    return {"status": "running"}


@router.api_route("/trigger", methods=["GET", "POST"])
async def trigger(request: Request):
    """Lance un run immédiatement, hors planning. Répond sans attendre le run."""
    start_background_run(request.app.state.settings, reason="manual")
    return {"status": "triggered"}
