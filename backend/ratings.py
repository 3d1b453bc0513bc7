"""Product rating aggregation.

A product's ``rating`` and ``review_count`` are a cached projection of its
approved reviews. ``RatingAggregator.recompute`` rebuilds that projection
from scratch, so running it again with the same approved set writes the
same values. Review handlers call ``schedule`` instead: the recompute runs
as a task whose failures go to the log and never to the review response.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

APPROVED = "approved"
REVIEW_STATUSES = ("pending", "approved", "rejected")

ONE_DECIMAL = Decimal("0.1")


@dataclass(frozen=True)
class RatingSummary:
    rating: float
    review_count: int


def summarize_ratings(ratings: Iterable[int]) -> RatingSummary:
    """Mean of ``ratings`` rounded half-up to one decimal, plus the count."""
    values = [int(value) for value in ratings]
    if not values:
        return RatingSummary(rating=0, review_count=0)
    mean = Decimal(sum(values)) / Decimal(len(values))
    rounded = mean.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)
    return RatingSummary(rating=float(rounded), review_count=len(values))


def affects_rating(old_status: Optional[str], new_status: Optional[str]) -> bool:
    return old_status == APPROVED or new_status == APPROVED


class RatingAggregator:
    def __init__(self, store, logger, mode: str = "inline"):
        self.store = store
        self.logger = logger
        self.mode = mode
        self._executor = None
        if mode == "background":
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="rating-refresh"
            )

    def recompute(self, product_id) -> RatingSummary:
        reviews = self.store.find_reviews_by_product_and_status(product_id, APPROVED)
        summary = summarize_ratings(review.get("rating", 0) for review in reviews)
        self.store.set_rating_fields(product_id, summary.rating, summary.review_count)
        return summary

    def schedule(self, product_id) -> Optional[Future]:
        if not product_id:
            return None

        if self._executor is not None:
            future = self._executor.submit(self.recompute, product_id)
            future.add_done_callback(
                lambda done: self._report(product_id, done.exception())
            )
            return future

        future = Future()
        try:
            future.set_result(self.recompute(product_id))
        except Exception as exc:
            future.set_exception(exc)
        self._report(product_id, future.exception())
        return future

    def _report(self, product_id, error: Optional[BaseException]) -> None:
        if error is None:
            return
        self.logger.error(
            "Rating recompute failed for product %s: %s",
            product_id,
            error,
            exc_info=(type(error), error, error.__traceback__),
        )

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
