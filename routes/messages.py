from fastapi import APIRouter, status

from dependencies.auth import CurrentUser
from dependencies.messaging import MessageServiceDep
from models.message_model import MessageCreate, MessageResponse, MessageUpdate

router = APIRouter()

@router.post("/", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    message: MessageCreate,
    current_user: CurrentUser,
    message_service: MessageServiceDep
):
    """Send a new message"""
    return await message_service.send(current_user.id, message)

@router.patch("/{message_id}", response_model=MessageResponse)
async def edit_message(
    message_id: str,
    update: MessageUpdate,
    current_user: CurrentUser,
    message_service: MessageServiceDep
):
    """Edit a message you sent"""
    return await message_service.edit(message_id, current_user.id, update.content)

@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    message_id: str,
    current_user: CurrentUser,
    message_service: MessageServiceDep
):
    """Delete a message you sent"""
    await message_service.delete(message_id, current_user.id)
