from passlib.context import CryptContext
from app.configs.settings import settings


"""
Configura el contexto de hashing usando el algoritmo BCrypt.
Este contexto se usa internamente para hashear y verificar contraseñas.
"""
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__default_rounds=settings.BCRYPT_ROUNDS
)


"""
Genera un hash seguro de la contraseña usando BCrypt.
Se utiliza al registrar o cambiar la contraseña antes de guardarla en la base de datos.
"""
def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


"""
Verifica si una contraseña en texto plano coincide con el hash almacenado.
Se usa en el login y al cambiar la contraseña.
"""
def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)
