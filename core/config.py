from datetime import timedelta
import os
from dotenv import load_dotenv

load_dotenv()
class Config:
    #SQLALCHEMY_DATABASE_URI = "sqlite:///storefront.db"
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///storefront.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Proxy endpoints the client side talks to, with the caller's session token
    PROXY_BASE_URL = os.environ.get("PROXY_BASE_URL", "http://localhost:5000")
    PROXY_TIMEOUT = float(os.environ.get("PROXY_TIMEOUT", 15))

    GHTK_API_URL = os.environ.get("GHTK_API_URL", "https://services.giaohangtietkiem.vn/services/shipment")
    GHTK_TOKEN = os.environ.get("GHTK_TOKEN")
    GHTK_CLIENT_SOURCE = os.environ.get("GHTK_CLIENT_SOURCE")

    PAYOS_API_URL = os.environ.get("PAYOS_API_URL", "https://api-merchant.payos.vn/v2/payment-requests")
    PAYOS_CLIENT_ID = os.environ.get("PAYOS_CLIENT_ID")
    PAYOS_API_KEY = os.environ.get("PAYOS_API_KEY")
    PAYOS_CHECKSUM_KEY = os.environ.get("PAYOS_CHECKSUM_KEY")
    PAYOS_REDIRECT_DOMAIN = os.environ.get("PAYOS_REDIRECT_DOMAIN", "http://localhost:5000")

    PAYMENT_SESSION_TIMEOUT_MINUTES = int(os.environ.get("PAYMENT_SESSION_TIMEOUT_MINUTES", 15))
