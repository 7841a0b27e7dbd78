from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import uuid

from ..core.security import encode_data_url


@dataclass
class User:
    """User model - accounts created by the identity provider on first login"""
    id: uuid.UUID
    email: str
    name: Optional[str]
    image: Optional[str]
    image_blob: Optional[bytes]
    role: str  # 'user' or 'admin'
    created_at: datetime
    updated_at: datetime
    last_login: Optional[datetime] = None

    @classmethod
    def from_row(cls, row):
        """Create User from database row"""
        return cls(
            id=row['id'],
            email=row['email'],
            name=row['name'],
            image=row['image'],
            image_blob=row.get('image_blob'),
            role=row['role'],
            created_at=row['created_at'],
            updated_at=row['updated_at'],
            last_login=row.get('last_login'),
        )

    @property
    def avatar(self) -> Optional[str]:
        """Uploaded blob wins over the external URL"""
        if self.image_blob:
            return encode_data_url(bytes(self.image_blob))
        return self.image

    def to_dict(self) -> dict:
        """Convert to dictionary; the raw blob is never sent to clients"""
        return {
            'id': str(self.id),
            'email': self.email,
            'name': self.name,
            'image': self.avatar,
            'role': self.role,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'last_login': self.last_login.isoformat() if self.last_login else None,
        }
