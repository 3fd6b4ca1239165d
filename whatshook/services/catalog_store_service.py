"""Legacy phone -> store resolution against the catalog store API."""

from typing import Optional

import httpx
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from whatshook.logging_config import get_logger, mask_phone
from whatshook.services.phone_service import resolve_store
from whatshook.services.resilience import CircuitOpenError, ResilientHttpClient
from whatshook.services.result import (
    CIRCUIT_OPEN,
    HTTP_ERROR,
    MALFORMED,
    NOT_FOUND,
    TRANSPORT_ERROR,
    Result,
)

logger = get_logger("catalog_store")


class StoreInfo(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    store_id: int = Field(validation_alias=AliasChoices("storeId", "store_id", "StoreId"))
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "storeName", "Name"))


class CatalogStoreClient:
    def __init__(self, http: ResilientHttpClient):
        self.http = http

    def lookup(self, digits: str) -> Result[StoreInfo]:
        """Look up a single phone form, no fallbacks."""
        if not digits:
            return Result.failure("Empty phone number", NOT_FOUND)

        try:
            response = self.http.get(f"/api/catalogstore/by-mobile/{digits}")
        except CircuitOpenError as e:
            return Result.failure(str(e), CIRCUIT_OPEN)
        except httpx.HTTPError as e:
            logger.warning(f"Store lookup failed for {mask_phone(digits)}: {e}")
            return Result.failure(str(e), TRANSPORT_ERROR)

        if response.status_code == 404:
            logger.debug(f"No store for {mask_phone(digits)}")
            return Result.failure("Store not found", NOT_FOUND)

        if not response.is_success:
            logger.warning(f"Store lookup for {mask_phone(digits)} returned {response.status_code}")
            return Result.failure(f"HTTP {response.status_code}", HTTP_ERROR)

        try:
            store = StoreInfo.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"Invalid store payload for {mask_phone(digits)}: {e}")
            return Result.failure("Invalid store payload", MALFORMED)

        if store.store_id <= 0:
            return Result.failure("Store id is not positive", MALFORMED)

        logger.info(f"Found store {store.store_id} for {mask_phone(digits)}")
        return Result.success(store)

    def get_store_by_phone(self, phone: str) -> Result[StoreInfo]:
        return resolve_store(phone, self.lookup)
