from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    port: int = 3000
    orders_file: str = "users.json"  # customer/order document, rewritten in full on every change
    static_dir: str = "static"  # ss.html, cart.html, delivery.html, cancel.html

    # OTP registry: "memory" (single process) or "redis"
    otp_backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    order_otp_ttl_seconds: int = 300
    delivery_otp_ttl_seconds: int = 600
    cancel_otp_ttl_seconds: int = 300
    otp_retention_seconds: int = 3600  # redis keeps expired records this long so they read as expired, not missing

    # Google Sheets mirror; empty sheet_id -> in-process sheet (dev only)
    sheet_id: str | None = None
    sheet_name: str = "Sheet1"
    service_account_file: str = "service-account.json"

    # Mail: "smtp" (gmail by default) or "ses"
    mail_backend: str = "smtp"
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    email_user: str | None = None
    email_pass: str | None = None
    mail_from_name: str = "Purevia"
    aws_region: str = "ap-south-1"

    # Receives new-order and delivery-start notices, and review replies
    admin_email: str | None = None

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
