"""Tests for persistence and the add-product / refresh flows."""

import pytest
from core.database.models import PriceHistory, Product
from core.database.operations import (
    DatabaseRecorder,
    DuplicateTrackingError,
    ProductNotFoundError,
    add_product,
    delete_product,
    get_price_history,
    get_product,
    list_products,
    record_price,
    to_tracked_item,
)
from core.scrapers.models import ExtractionFailure, FailureKind, RefreshStatus
from core.scrapers.platforms import Platform
from core.tracker.service import ExtractionFailedError, refresh_watchlist, track_product

URL = "https://24h.pchome.com.tw/prod/DYAJ9G-A900GKS2T"
OTHER_URL = "https://www.momoshop.com.tw/goods/GoodsDetail.jsp?i_code=9"


class TestOperations:
    """Tests for the database operations."""

    def test_add_product_records_first_price(self, db_session, make_result):
        product = add_product(db_session, URL, make_result(1290, image_url="https://img/x.jpg"), target_price=1000)
        assert product.id is not None
        assert product.current_price == 1290
        assert product.target_price == 1000
        assert product.platform == "PChome"
        assert [h.price for h in get_price_history(db_session, product.id)] == [1290]

    def test_duplicate_url(self, db_session, make_result):
        first = add_product(db_session, URL, make_result(100))
        with pytest.raises(DuplicateTrackingError) as excinfo:
            add_product(db_session, URL, make_result(200))
        assert excinfo.value.product_id == first.id
        assert db_session.query(Product).count() == 1
        assert db_session.query(PriceHistory).count() == 1

    def test_record_price_updates_and_appends(self, db_session, make_result):
        product = add_product(db_session, URL, make_result(1000))
        record_price(db_session, product.id, 900)
        record_price(db_session, product.id, 850)
        assert get_product(db_session, product.id).current_price == 850
        assert [h.price for h in get_price_history(db_session, product.id)] == [850, 900, 1000]
        assert [h.price for h in get_price_history(db_session, product.id, limit=1)] == [850]

    def test_record_price_missing_product(self, db_session):
        with pytest.raises(ProductNotFoundError):
            record_price(db_session, 404, 10)

    def test_list_newest_first(self, db_session, make_result):
        add_product(db_session, URL, make_result(1))
        add_product(db_session, OTHER_URL, make_result(2))
        assert [p.url for p in list_products(db_session)] == [OTHER_URL, URL]

    def test_delete_removes_history(self, db_session, make_result):
        product = add_product(db_session, URL, make_result(100))
        record_price(db_session, product.id, 90)
        assert delete_product(db_session, product.id) is True
        assert db_session.query(PriceHistory).count() == 0
        assert delete_product(db_session, product.id) is False

    def test_to_tracked_item(self, db_session, make_result):
        product = add_product(db_session, URL, make_result(100), target_price=80)
        item = to_tracked_item(product)
        assert item.id == product.id
        assert item.platform == Platform.PCHOME
        assert item.target_price == 80

    def test_recorder(self, db_session, make_result):
        product = add_product(db_session, URL, make_result(100))
        DatabaseRecorder(db_session).record_price(to_tracked_item(product), make_result(75))
        assert get_product(db_session, product.id).current_price == 75


class TestTrackProduct:
    """Tests for the add-product flow."""

    def test_adds_scraped_product(self, db_session, fake_extractor, make_result):
        extractor = fake_extractor({URL: make_result(4990, title="Headphones")})
        product = track_product(db_session, extractor, URL, target_price=4000)
        assert product.title == "Headphones"
        assert product.current_price == 4990

    def test_duplicate_is_detected_before_scraping(self, db_session, fake_extractor, make_result):
        add_product(db_session, URL, make_result(100))
        extractor = fake_extractor({URL: make_result(200)})
        with pytest.raises(DuplicateTrackingError):
            track_product(db_session, extractor, URL)
        assert extractor.calls == []
        assert db_session.query(Product).count() == 1

    def test_failed_extraction(self, db_session, fake_extractor):
        extractor = fake_extractor({URL: ExtractionFailure(URL, FailureKind.RENDER_FAILURE, "timeout")})
        with pytest.raises(ExtractionFailedError) as excinfo:
            track_product(db_session, extractor, URL)
        assert excinfo.value.kind == "render_failure"
        assert db_session.query(Product).count() == 0

    def test_zero_price_is_rejected(self, db_session, fake_extractor, make_result):
        extractor = fake_extractor({URL: make_result(0)})
        with pytest.raises(ExtractionFailedError) as excinfo:
            track_product(db_session, extractor, URL)
        assert excinfo.value.kind == "zero_price"


class TestRefreshWatchlist:
    """Tests for refreshing every stored product."""

    def test_refresh_saves_prices(self, db_session, fake_extractor, make_result):
        cheap = add_product(db_session, URL, make_result(1200), target_price=1000)
        other = add_product(db_session, OTHER_URL, make_result(500))
        extractor = fake_extractor({
            URL: make_result(1000),
            OTHER_URL: ExtractionFailure(OTHER_URL, FailureKind.SCRAPE_ERROR, "boom"),
        })

        outcomes = refresh_watchlist(db_session, extractor, delay_seconds=0)

        statuses = {o.item_id: o.status for o in outcomes}
        assert statuses == {cheap.id: RefreshStatus.ALERT, other.id: RefreshStatus.FAILED}
        assert get_product(db_session, cheap.id).current_price == 1000
        assert get_product(db_session, other.id).current_price == 500
        assert len(get_price_history(db_session, cheap.id)) == 2
        assert len(get_price_history(db_session, other.id)) == 1
