# app/routers/pages.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from app.common.deps import get_optional_identity
from app.models.session import Identity

router = APIRouter()


# Page rendering lives in the web client; this is the guarded landing target.
@router.get("/{page_path:path}", include_in_schema=False)
def read_page(page_path: str, identity: Optional[Identity] = Depends(get_optional_identity)):
    if page_path == "api" or page_path.startswith("api/"):
        raise HTTPException(status_code=404, detail="Not Found")
    return {
        "page": "/" + page_path,
        "user_id": identity.id if identity else None,
    }
