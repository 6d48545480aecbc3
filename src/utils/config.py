# runtime settings, read once from the environment (and .env if present)
import os
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()

DB_PATH = os.getenv("STOREFRONT_DB_PATH", "data/storefront.sqlite")
CART_PATH = os.getenv("STOREFRONT_CART_PATH", "data/cart.json")
LOG_FILE = os.getenv("STOREFRONT_LOG_FILE", "")

CURRENCY_SYMBOL = os.getenv("STOREFRONT_CURRENCY", "₹")
LOW_STOCK_THRESHOLD = int(os.getenv("STOREFRONT_LOW_STOCK", 10))
PAGE_SIZE = int(os.getenv("STOREFRONT_PAGE_SIZE", 5))

# share of revenue reported as profit on the analytics screen
PROFIT_MARGIN = Decimal(os.getenv("STOREFRONT_PROFIT_MARGIN", "0.30"))

# shown on the contact screen and on invoices
COMPANY_NAME = os.getenv("STOREFRONT_COMPANY_NAME", "RN Industries")
COMPANY_ADDRESS = os.getenv("STOREFRONT_COMPANY_ADDRESS", "Plot 14, MIDC Bhosari, Pune 411026")
COMPANY_EMAIL = os.getenv("STOREFRONT_COMPANY_EMAIL", "sales@rnindustries.example")
COMPANY_PHONE = os.getenv("STOREFRONT_COMPANY_PHONE", "+91 20 2712 0000")
COMPANY_DESCRIPTION = os.getenv(
    "STOREFRONT_COMPANY_DESCRIPTION", "Get in touch with us for inquiries"
)
