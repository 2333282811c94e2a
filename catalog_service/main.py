from contextlib import asynccontextmanager
import logging
import os
from typing import List

from fastapi import BackgroundTasks, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import verify_token
from .cache import RedisCache, redis_client
from .db import init_db, SessionLocal
from .errors import (
    AggregateUnavailable,
    CacheError,
    CatalogError,
    NotFound,
    StoreError,
    ValidationError,
)
from .kafka_producer import produce_event, stop_producer
from .schemas import (
    ErrorResponse,
    ProductCreate,
    ProductOut,
    ProductRatingOut,
    ReviewCreate,
    ReviewOut,
    ReviewUpdate,
)
from .services import ProductService, RatingAggregator, ReviewService
from .store import SqlStore

LOG_PATH= os.getenv('LOG_PATH')
log_config= dict(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
if LOG_PATH:
    os.makedirs(LOG_PATH, exist_ok=True)
    log_config.update(filename=f'{LOG_PATH}/catalog_service.log', filemode='a')
logging.basicConfig(**log_config)
logger= logging.getLogger(__name__)

STATUS_BY_ERROR= {
    NotFound: 404,
    ValidationError: 400,
    StoreError: 500,
    CacheError: 500,
    AggregateUnavailable: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield
    await stop_producer()

app= FastAPI(
    lifespan=lifespan,
    title="Product Catalog API",
    dependencies=[Depends(verify_token)],
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)


def get_db():
    db= SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_store(db=Depends(get_db)):
    return SqlStore(db)

def get_cache():
    return RedisCache(redis_client)

def get_aggregator(store=Depends(get_store), cache=Depends(get_cache)):
    return RatingAggregator(store, cache)

def get_product_service(store=Depends(get_store), cache=Depends(get_cache), aggregator=Depends(get_aggregator)):
    return ProductService(store, cache, aggregator)

def get_review_service(store=Depends(get_store), cache=Depends(get_cache), aggregator=Depends(get_aggregator)):
    return ReviewService(store, cache, aggregator)


def error_response(status_code: int, message: str, details=None):
    body= ErrorResponse(message=message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))

@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    status_code= STATUS_BY_ERROR.get(type(exc), 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.details})")
    return error_response(status_code, exc.message, exc.details)

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details= "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return error_response(400, "Invalid request data", details)

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


@app.post("/products", response_model=ProductOut, status_code=201)
def create_product(
    product: ProductCreate,
    background_tasks: BackgroundTasks,
    service: ProductService = Depends(get_product_service),
):
    """Create a new product with no reviews and an average rating of 0.
    """
    new_product= service.create(product)
    background_tasks.add_task(produce_event, "product_created", new_product.to_dict())
    return new_product

@app.get("/products", response_model=List[ProductOut])
def list_products(service: ProductService = Depends(get_product_service)):
    return service.list()

@app.get("/products/{product_id}", response_model=ProductRatingOut)
def get_product(product_id: int, service: ProductService = Depends(get_product_service)):
    """Return a product's average rating, served from the cache when present.

    :param product_id: id of the product
    :raises NotFound: on a cache miss for a product that does not exist
    :return: the product id and its average rating
    :rtype: ProductRatingOut
    """
    return ProductRatingOut(product_id=product_id, average_rating=service.get(product_id))

@app.put("/products/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    product: ProductCreate,
    service: ProductService = Depends(get_product_service),
):
    return service.update(product_id, product)

@app.delete("/products/{product_id}", status_code=204)
def delete_product(
    product_id: int,
    background_tasks: BackgroundTasks,
    service: ProductService = Depends(get_product_service),
):
    service.delete(product_id)
    background_tasks.add_task(produce_event, "product_deleted", {"id": product_id})
    return Response(status_code=204)


@app.post("/reviews", response_model=ReviewOut, status_code=201)
def create_review(
    review: ReviewCreate,
    background_tasks: BackgroundTasks,
    service: ReviewService = Depends(get_review_service),
):
    """Create a review and recompute its product's average rating.
    """
    new_review= service.create(review)
    background_tasks.add_task(produce_event, "review_created", new_review.to_dict())
    return new_review

@app.get("/reviews/{review_id}", response_model=ReviewOut)
def get_review(review_id: int, service: ReviewService = Depends(get_review_service)):
    return service.get(review_id)

@app.put("/reviews/{review_id}", response_model=ReviewOut)
def update_review(
    review_id: int,
    review: ReviewUpdate,
    background_tasks: BackgroundTasks,
    service: ReviewService = Depends(get_review_service),
):
    updated= service.update(review_id, review)
    background_tasks.add_task(produce_event, "review_updated", updated.to_dict())
    return updated

@app.delete("/reviews/{review_id}", status_code=204)
def delete_review(
    review_id: int,
    background_tasks: BackgroundTasks,
    service: ReviewService = Depends(get_review_service),
):
    product_id= service.delete(review_id)
    background_tasks.add_task(produce_event, "review_deleted", {"id": review_id, "product_id": product_id})
    return Response(status_code=204)
