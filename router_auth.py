# UNI-TEL - Academic tracker
# Copyright (C) 2026 (linuxdev)
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.


from fastapi import APIRouter, Depends, HTTPException, status, Request
from typing import Optional
import bleach

import crud_ops
import schemas
from cache_layer import AcademicStore, get_store
from validation import clean_text_fields

router = APIRouter()


def get_current_user_id(request: Request) -> Optional[str]:
    """Identity set by the sign-in provider, as a cookie or a header"""
    user_id = request.cookies.get("user_id") or request.headers.get("X-User-Id")
    if not user_id:
        return None
    user_id = bleach.clean(user_id).strip()
    return user_id or None


def require_user(request: Request) -> str:
    user_id = get_current_user_id(request)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in"
        )
    return user_id


@router.get("/api/profile")
async def read_profile(user_id: str = Depends(require_user), store: AcademicStore = Depends(get_store)):
    def work(db):
        profile = crud_ops.get_profile(db, user_id)
        if not profile:
            return schemas.Profile(user_id=user_id)
        return schemas.Profile.model_validate(profile)
    return await store.execute(work)


@router.put("/api/profile")
async def update_profile(
    data: schemas.ProfileUpdate,
    user_id: str = Depends(require_user),
    store: AcademicStore = Depends(get_store)
):
    updates = clean_text_fields(data.model_dump(exclude_unset=True))
    return await store.execute(
        lambda db: schemas.Profile.model_validate(crud_ops.upsert_profile(db, user_id, updates))
    )
