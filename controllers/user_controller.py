# controllers/user_controller.py
from fastapi import APIRouter

from helpers import profile_store

router = APIRouter()


# lookup auto-creates, so there is no 404 here
@router.get("/user/{phone_number}")
async def get_user(phone_number: str):
    user = await profile_store.get_or_create_user(phone_number)
    return await profile_store.serialize_user(user)
