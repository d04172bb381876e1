"""GET /v1/directory - read-only customer and product lookups for selection"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from pos_planner.api.dependencies import get_directory_client
from pos_planner.api.v1.schemas import CustomerSchema, ProductSchema
from pos_planner.domain.exceptions import DirectoryServiceError
from pos_planner.infrastructure.clients.directory import DirectoryClient
from pos_planner.infrastructure.observability.metrics import directory_fetch_failures_counter

router = APIRouter()


@router.get("/directory/customers", response_model=List[CustomerSchema])
async def search_customers(
    term: str = Query("", description="Name, phone, or email fragment"),
    limit: int = Query(24, ge=1, le=100),
    directory: DirectoryClient = Depends(get_directory_client),
):
    try:
        customers = await directory.search_customers(term, limit)
    except DirectoryServiceError as e:
        directory_fetch_failures_counter.inc()
        logging.warning(f"Customer lookup failed: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    return [CustomerSchema(**vars(c)) for c in customers]


@router.get("/directory/products", response_model=List[ProductSchema])
async def search_products(
    term: str = Query("", description="Product name fragment"),
    limit: int = Query(24, ge=1, le=100),
    directory: DirectoryClient = Depends(get_directory_client),
):
    try:
        products = await directory.search_products(term, limit)
    except DirectoryServiceError as e:
        directory_fetch_failures_counter.inc()
        logging.warning(f"Product lookup failed: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    return [ProductSchema(**vars(p)) for p in products]
