"""Direct GitHub passthrough and manual poll trigger"""

from fastapi import APIRouter, Depends

from app.api.deps import get_github, get_poller
from app.errors import ValidationError, upstream_error_from_result
from app.utils.helpers import is_valid_repo_segment

router = APIRouter(prefix="/github", tags=["github"])


@router.get("/languages/{owner}/{repo}")
async def get_languages(owner: str, repo: str, github=Depends(get_github)):
    if not is_valid_repo_segment(owner) or not is_valid_repo_segment(repo):
        raise ValidationError("Invalid repository owner or name")
    result = await github.list_languages(owner, repo)
    if result.is_failed:
        raise upstream_error_from_result(result, "Repository")
    return result.data or {}


@router.post("/poll")
async def poll(poller=Depends(get_poller)):
    return await poller.poll_now()
