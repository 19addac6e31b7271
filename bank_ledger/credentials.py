"""
Credential Store Module

Holds registered users keyed by username: profile fields plus a salted
scrypt digest of the password. The clear-text password is never kept.
Accounts reference users only by username.
"""

from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
import hashlib
import hmac
import re
import secrets
import threading

from .errors import UserNotFoundError, UserAlreadyExistsError
from .logging_config import get_logger, log_action


EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
PHONE_PATTERN = re.compile(r'^\d{10}$')
USERNAME_PATTERN = re.compile(r'^\S+$')

DEFAULT_PASSWORD_MIN_LENGTH = 8


def generate_salt() -> str:
    """Generate random salt for password hashing"""
    return secrets.token_hex(16)


def hash_password(password: str, salt: str) -> str:
    """Hash password with salt using scrypt"""
    return hashlib.scrypt(
        password.encode(),
        salt=salt.encode(),
        n=16384, r=8, p=1
    ).hex()


@dataclass
class UserDetails:
    """Registered user: profile fields and password digest"""
    username: str
    name: str
    city: str
    email: str
    phone: str
    password_hash: str = field(repr=False)
    password_salt: str = field(repr=False)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if not self.username or not USERNAME_PATTERN.match(self.username):
            raise ValueError("Username must be non-empty and contain no whitespace")

        if not EMAIL_PATTERN.match(self.email):
            raise ValueError("Invalid email format")

        if not PHONE_PATTERN.match(self.phone):
            raise ValueError("Phone number must be 10 digits")

    def check_password(self, password: str) -> bool:
        """Constant-time comparison against the stored digest"""
        candidate = hash_password(password, self.password_salt)
        return hmac.compare_digest(candidate, self.password_hash)

    def summary(self) -> str:
        return f"User(username={self.username}, name={self.name}, city={self.city}, phone={self.phone})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'username': self.username,
            'name': self.name,
            'city': self.city,
            'email': self.email,
            'phone': self.phone,
            'password_hash': self.password_hash,
            'password_salt': self.password_salt,
            'created_at': self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserDetails':
        return cls(
            username=data['username'],
            name=data['name'],
            city=data['city'],
            email=data['email'],
            phone=data['phone'],
            password_hash=data['password_hash'],
            password_salt=data['password_salt'],
            created_at=datetime.fromisoformat(data['created_at']),
        )


class CredentialStore:
    """
    Registered users keyed by username
    """

    def __init__(self, password_min_length: int = DEFAULT_PASSWORD_MIN_LENGTH):
        self._users: Dict[str, UserDetails] = {}
        self._lock = threading.RLock()
        self.password_min_length = password_min_length
        self.logger = get_logger("bank_ledger.credentials")

    def register_user(
        self,
        username: str,
        password: str,
        name: str,
        city: str,
        email: str,
        phone: str
    ) -> UserDetails:
        """
        Register a new user

        Args:
            username: Unique login name
            password: Clear-text password; only its digest is stored
            name: Full name
            city: City
            email: Email address
            phone: 10-digit phone number

        Returns:
            Created UserDetails

        Raises:
            UserAlreadyExistsError: If the username is taken
            ValueError: If a field fails validation
        """
        username = username.strip() if username else username
        self._validate_password(password)

        salt = generate_salt()
        user = UserDetails(
            username=username,
            name=name.strip(),
            city=city.strip(),
            email=email.strip(),
            phone=phone.strip(),
            password_hash=hash_password(password, salt),
            password_salt=salt,
        )

        with self._lock:
            if username in self._users:
                raise UserAlreadyExistsError(f"Username '{username}' is already taken")
            self._users[username] = user

        log_action(
            self.logger, "info", "User registered",
            action="register_user", resource=f"user:{username}", username=username
        )
        return user

    def authenticate(self, username: str, password: str) -> Optional[UserDetails]:
        """Return the user if the password matches, None otherwise"""
        user = self.get_user(username)
        if user is None or not self._verify(user, password):
            log_action(
                self.logger, "warning", "Authentication failed",
                action="authenticate", resource=f"user:{username}", username=username
            )
            return None
        return user

    def change_password(self, username: str, old_password: str, new_password: str) -> bool:
        """Change user password after verifying the old one"""
        user = self.require_user(username)
        if not self._verify(user, old_password):
            return False

        self._validate_password(new_password)

        salt = generate_salt()
        digest = hash_password(new_password, salt)
        with self._lock:
            user.password_salt = salt
            user.password_hash = digest

        log_action(
            self.logger, "info", "Password changed",
            action="change_password", resource=f"user:{username}", username=username
        )
        return True

    def get_user(self, username: str) -> Optional[UserDetails]:
        with self._lock:
            return self._users.get(username)

    def require_user(self, username: str) -> UserDetails:
        """Get user or raise UserNotFoundError"""
        user = self.get_user(username)
        if user is None:
            raise UserNotFoundError(f"User '{username}' not found")
        return user

    def exists(self, username: str) -> bool:
        with self._lock:
            return username in self._users

    def list_users(self) -> List[UserDetails]:
        with self._lock:
            return list(self._users.values())

    def snapshot_users(self) -> List[UserDetails]:
        """Detached copies of every user, taken under the store lock"""
        with self._lock:
            return [UserDetails.from_dict(user.to_dict()) for user in self._users.values()]

    def load_state(self, users: Iterable[UserDetails]) -> None:
        """Replace all users (used when restoring a checkpoint)"""
        with self._lock:
            self._users = {user.username: user for user in users}

    def export_state(self) -> Dict[str, UserDetails]:
        """Copy of the users-by-username map"""
        with self._lock:
            return dict(self._users)

    def _verify(self, user: UserDetails, password: str) -> bool:
        with self._lock:
            salt, digest = user.password_salt, user.password_hash
        return hmac.compare_digest(hash_password(password, salt), digest)

    def _validate_password(self, password: str) -> None:
        if not password or len(password) < self.password_min_length:
            raise ValueError(f"Password must be at least {self.password_min_length} characters")
