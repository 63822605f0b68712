# Password hashing and verification using passlib.
# Token issuance and sessions live outside this service.

from passlib.context import CryptContext

# New hashes use pbkdf2_sha256; bcrypt hashes are still accepted on verify
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)
