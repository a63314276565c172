from typing import List, Optional
from urllib.parse import quote_plus

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    postgres_user: str = "postgres"
    postgres_password: str = ""
    postgres_db: str = "coaching"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"

    # full URL wins over the postgres_* parts (sqlite in tests)
    database_url_override: Optional[str] = Field(default=None, alias="DATABASE_URL")

    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    r2_account_id: str = ""
    r2_access_key_id: str = ""
    r2_secret_access_key: str = ""
    r2_bucket_name: str = ""

    # payment screenshots
    max_proof_bytes: int = 5 * 1024 * 1024
    proof_key_prefix: str = "payment_proofs"
    proof_content_types: List[str] = [
        "image/jpeg",
        "image/png",
        "image/webp",
        "image/heic",
        "image/heif",
    ]

    # shown to the buyer while the order waits for payment
    payment_upi_id: str = "merchant@okaxis"
    payment_gpay_number: str = ""
    payment_payee_name: str = "Coaching Institute"
    currency: str = "INR"

    env: str = "local"
    log_level: str = "INFO"
    cors_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    @property
    def database_url(self):
        if self.database_url_override:
            return self.database_url_override
        encoded_password = quote_plus(self.postgres_password)
        return (
            f"postgresql+psycopg2://{self.postgres_user}:"
            f"{encoded_password}@{self.postgres_host}:"
            f"{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def r2_endpoint_url(self):
        return f"https://{self.r2_account_id}.r2.cloudflarestorage.com"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"
        populate_by_name = True


settings = Settings()
