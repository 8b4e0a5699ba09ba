from db.schemas.message_schema import MessageInDB
from models.message_model import MessageResponse

def message_db_to_response(message_db: MessageInDB) -> MessageResponse:
    """Convert database message schema to API response model"""
    message_dict = message_db.model_dump(by_alias=False)

    response_fields = MessageResponse.model_fields.keys()
    filtered_message = {k: v for k, v in message_dict.items() if k in response_fields}

    return MessageResponse(**filtered_message)
