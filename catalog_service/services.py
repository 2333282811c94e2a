"""Catalog core: products, reviews and the cached average rating.

The store is the source of truth. The cache holds one derived value per
product, its average rating, under ``product:{id}:average_rating``. Every
review mutation recomputes that value and writes it to the store and then
to the cache. The two writes are not transactional and nothing here locks
a product against concurrent recomputes: the last writer wins.
"""
import logging
import math
from typing import List, Optional

from .cache import RATING_CACHE_TTL, CacheMiss, rating_key
from .errors import AggregateUnavailable, ValidationError
from .models import Product, Review
from .validation import validate_product, validate_review

logger= logging.getLogger(__name__)


def average_of(ratings: List[int]) -> float:
    if not ratings:
        return 0.0
    return sum(ratings) / len(ratings)


class RatingAggregator:
    def __init__(self, store, cache, ttl: Optional[int] = RATING_CACHE_TTL):
        self.store= store
        self.cache= cache
        self.ttl= ttl

    def recompute(self, product_id: int) -> float:
        """Recalculate a product's average rating from its current reviews.

        :param product_id: id of the product to recompute
        :raises NotFound: the product does not exist
        :raises StoreError: loading or saving the product failed
        :raises CacheError: the store was updated but the cache write failed
        :return: the new average, 0.0 when the product has no reviews
        """
        product= self.store.find_by_id(Product, product_id)
        reviews= self.store.find_where(Review, product_id=product_id)

        average= average_of([review.rating for review in reviews])
        if math.isnan(average):
            raise AggregateUnavailable(
                "Product average rating is not available",
                f"computed NaN for product {product_id}",
            )

        product.average_rating= average
        self.store.save(product)
        self.cache.set(rating_key(product_id), str(average), self.ttl)
        logger.info(f"Recomputed average rating for product {product_id}: {average} ({len(reviews)} reviews)")
        return average

    def get_cached(self, product_id: int) -> Optional[float]:
        """Return the cached average rating, or None on a cache miss."""
        try:
            value= self.cache.get(rating_key(product_id))
        except CacheMiss:
            return None
        try:
            return float(value)
        except ValueError as e:
            raise AggregateUnavailable(
                "Product average rating is not available",
                f"cached value for product {product_id} is not a number: {value!r}",
            ) from e


class ProductService:
    def __init__(self, store, cache, aggregator: Optional[RatingAggregator] = None):
        self.store= store
        self.cache= cache
        self.aggregator= aggregator or RatingAggregator(store, cache)

    def get(self, product_id: int) -> float:
        """Return the product's average rating, trusting the cache when it has one.

        On a miss the product's existence is checked, the rating is recomputed
        and the cache is read again, so the caller sees what was just written.
        """
        rating= self.aggregator.get_cached(product_id)
        if rating is None:
            logger.info(f"Cache miss for product {product_id} average rating")
            self.store.find_by_id(Product, product_id)
            self.aggregator.recompute(product_id)
            rating= self.aggregator.get_cached(product_id)
            if rating is None:
                raise AggregateUnavailable(
                    "Product average rating is not available",
                    f"cache entry for product {product_id} missing after recompute",
                )

        if not math.isfinite(rating):
            raise AggregateUnavailable(
                "Product average rating is not available",
                f"cached value for product {product_id} is not finite: {rating}",
            )
        return rating

    def list(self) -> List[Product]:
        products= self.store.find_all(Product, preload=("reviews",))
        for product in products:
            if product.average_rating is None or math.isnan(product.average_rating):
                product.average_rating= 0.0
        return products

    def create(self, data) -> Product:
        violations= validate_product(data.name, data.price)
        if violations:
            raise ValidationError("Invalid product data", violations)
        product= self.store.create(Product(
            name=data.name,
            description=data.description or "",
            price=data.price,
            average_rating=0.0,
        ))
        logger.info(f"Created new product: {product.id}")
        return product

    def update(self, product_id: int, data) -> Product:
        product= self.store.find_by_id(Product, product_id)
        violations= validate_product(data.name, data.price)
        if violations:
            raise ValidationError("Invalid product data", violations)
        product.name= data.name
        product.description= data.description or ""
        product.price= data.price
        product= self.store.save(product)
        logger.info(f"Updated product: {product_id}")
        return product

    def delete(self, product_id: int):
        self.store.delete(Product, product_id)
        logger.info(f"Deleted product: {product_id}")
        # the row is already gone; a failure here leaves an orphaned cache key
        self.cache.delete(rating_key(product_id))


class ReviewService:
    def __init__(self, store, cache, aggregator: Optional[RatingAggregator] = None):
        self.store= store
        self.aggregator= aggregator or RatingAggregator(store, cache)

    def get(self, review_id: int) -> Review:
        return self.store.find_by_id(Review, review_id)

    def create(self, data) -> Review:
        violations= validate_review(data.first_name, data.last_name, data.rating, data.product_id)
        if violations:
            raise ValidationError("Invalid review data", violations)
        self.store.find_by_id(Product, data.product_id)

        review= self.store.create(Review(
            first_name=data.first_name,
            last_name=data.last_name,
            review_text=data.review_text or "",
            rating=data.rating,
            product_id=data.product_id,
        ))
        logger.info(f"Created new review {review.id} for product {review.product_id}")
        self.aggregator.recompute(review.product_id)
        return review

    def update(self, review_id: int, data) -> Review:
        review= self.store.find_by_id(Review, review_id)
        violations= validate_review(data.first_name, data.last_name, data.rating, review.product_id)
        if violations:
            raise ValidationError("Invalid review data", violations)

        review.first_name= data.first_name
        review.last_name= data.last_name
        review.review_text= data.review_text or ""
        review.rating= data.rating
        review= self.store.save(review)
        logger.info(f"Updated review {review_id}")
        # recomputed even when the rating is unchanged
        self.aggregator.recompute(review.product_id)
        return review

    def delete(self, review_id: int) -> int:
        """Delete a review and refresh its product's rating.

        :return: id of the product the review belonged to
        """
        review= self.store.find_by_id(Review, review_id)
        product_id= review.product_id
        self.store.delete(Review, review_id)
        logger.info(f"Deleted review {review_id}")
        self.aggregator.recompute(product_id)
        return product_id
