from pwdlib import PasswordHash


MIN_PASSWORD_LENGTH = 8

password_hash = PasswordHash.recommended()


def hash_password(raw_password: str) -> str:
    return password_hash.hash(raw_password)


def verify_password(raw_password: str, hashed_password: str) -> tuple[bool, str | None]:
    """Check a staff password; the second value is a fresh hash when the stored one is outdated."""
    return password_hash.verify_and_update(raw_password, hashed_password)


def password_problem(raw_password: str) -> str | None:
    if len(raw_password) < MIN_PASSWORD_LENGTH:
        return f'Password must be at least {MIN_PASSWORD_LENGTH} characters'
    if not raw_password.strip():
        return 'Password cannot be blank'
    return None
