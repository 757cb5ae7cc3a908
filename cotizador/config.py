from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./cotizador.db"
    COMPANY_NAME: str = "GRUPO UCMV S.A. de C.V."

    # Pricing
    PRICE_TOLERANCE: str = "0.01"  # stored vs. recalculated, in currency units
    TAX_RATE: str = "0.16"  # IVA on the quotation subtotal

    # Project codes
    CODE_DECADE_BASE: int = 2020  # single year digit in codes is read against this decade
    ALLOCATION_MAX_RETRIES: int = 3

    AUTO_SEED: bool = True

    class Config:
        env_file = ".env"


settings = Settings()
