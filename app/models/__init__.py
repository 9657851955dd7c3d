from app.models.admin_log import AdminLog
from app.models.api_key import ApiKey
from app.models.contact import Contact
from app.models.upload import Upload
from app.models.user import User

__all__ = ["User", "ApiKey", "Upload", "Contact", "AdminLog"]
