"""Tests for CommunitySourcingFlow."""

import asyncio

import pytest

from conftest import NOW, FakeExtractor, FakeObjectStore, make_images, make_product
from glutenpeek.ai import ExtractedProduct
from glutenpeek.community import CommunitySourcingFlow
from glutenpeek.errors import CatalogError, ExtractionError, UploadError, ValidationError
from glutenpeek.models import UNKNOWN, UNKNOWN_AI_PRODUCT


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def object_store():
    return FakeObjectStore()


@pytest.fixture
def flow(extractor, object_store, catalog):
    return CommunitySourcingFlow(extractor, object_store, catalog, clock=lambda: NOW)


class TestValidation:
    @pytest.mark.asyncio
    async def test_three_images_rejected_without_calls(self, flow, extractor, object_store, catalog):
        with pytest.raises(ValidationError, match="at least 4"):
            await flow.submit("0001", make_images(3))
        assert extractor.calls == []
        assert object_store.uploads == []
        assert catalog.count() == 0

    @pytest.mark.asyncio
    async def test_too_many_images(self, flow, extractor):
        with pytest.raises(ValidationError, match="At most 8"):
            await flow.submit("0001", make_images(9))
        assert extractor.calls == []

    @pytest.mark.asyncio
    async def test_bad_content_type(self, flow, extractor):
        images = make_images(4)
        images[2].content_type = "application/pdf"
        with pytest.raises(ValidationError, match="not a valid image type"):
            await flow.submit("0001", images)
        assert extractor.calls == []

    @pytest.mark.asyncio
    async def test_oversize_image(self, extractor, object_store, catalog):
        flow = CommunitySourcingFlow(extractor, object_store, catalog, max_image_bytes=10)
        with pytest.raises(ValidationError, match="size limit"):
            await flow.submit("0001", make_images(4, size=11))

    @pytest.mark.asyncio
    async def test_missing_barcode(self, flow):
        with pytest.raises(ValidationError):
            await flow.submit("  ", make_images(4))

    def test_minimum_is_configurable(self, extractor, object_store, catalog):
        flow = CommunitySourcingFlow(extractor, object_store, catalog, min_images=2)
        flow.validate("0001", make_images(2))


class TestSubmit:
    @pytest.mark.asyncio
    async def test_four_images_one_extract_one_upload(self, flow, extractor, object_store, catalog):
        product = await flow.submit("0001", make_images(4))

        assert extractor.calls == [(4, "0001")]
        assert len(object_store.uploads) == 1
        blob, prefix = object_store.uploads[0]
        assert prefix == "products/0001"
        assert blob.filename == "photo0.jpg"

        assert product.name == "Granola Bar"
        assert product.ingredients == ["oats"]
        assert product.picture_url.startswith("https://bucket.example/products/0001/")
        assert product.status.label == UNKNOWN
        assert product.status.last_evaluated_at == NOW
        assert catalog.get("0001") == product

    @pytest.mark.asyncio
    async def test_empty_name_gets_default(self, object_store, catalog):
        extractor = FakeExtractor(ExtractedProduct(name="", ingredients=[]))
        flow = CommunitySourcingFlow(extractor, object_store, catalog)
        product = await flow.submit("0001", make_images(4))
        assert product.name == UNKNOWN_AI_PRODUCT

    @pytest.mark.asyncio
    async def test_extractor_failure_writes_nothing(self, object_store, catalog):
        flow = CommunitySourcingFlow(
            FakeExtractor(error=RuntimeError("model overloaded")), object_store, catalog
        )
        with pytest.raises(ExtractionError, match="model overloaded"):
            await flow.submit("0001", make_images(4))
        assert object_store.uploads == []
        assert catalog.get("0001") is None

    @pytest.mark.asyncio
    async def test_extractor_timeout(self, object_store, catalog):
        class SlowExtractor(FakeExtractor):
            async def extract_product_info(self, images, barcode):
                await asyncio.sleep(1)

        flow = CommunitySourcingFlow(SlowExtractor(), object_store, catalog, extract_timeout=0.01)
        with pytest.raises(ExtractionError, match="timed out"):
            await flow.submit("0001", make_images(4))

    @pytest.mark.asyncio
    async def test_upload_failure_writes_nothing(self, extractor, catalog):
        flow = CommunitySourcingFlow(
            extractor, FakeObjectStore(error=OSError("bucket gone")), catalog
        )
        with pytest.raises(UploadError):
            await flow.submit("0001", make_images(4))
        assert catalog.get("0001") is None

        # resubmitting the same photos after the failure succeeds
        flow._object_store = FakeObjectStore()
        product = await flow.submit("0001", make_images(4))
        assert product.barcode == "0001"

    @pytest.mark.asyncio
    async def test_existing_product_is_returned_without_extraction(
        self, flow, extractor, object_store, catalog
    ):
        catalog.create(make_product(name="Granola Bar (catalog)"))
        product = await flow.submit("0001", make_images(4))
        assert product.name == "Granola Bar (catalog)"
        assert extractor.calls == []
        assert object_store.uploads == []

    @pytest.mark.asyncio
    async def test_concurrent_creation_keeps_first_record(self, extractor, catalog, caplog):
        class RacingStore(FakeObjectStore):
            async def upload(self, blob, path_prefix):
                catalog.create(make_product(name="Created elsewhere"))
                return await super().upload(blob, path_prefix)

        flow = CommunitySourcingFlow(extractor, RacingStore(), catalog)
        with caplog.at_level("WARNING", logger="glutenpeek.community"):
            product = await flow.submit("0001", make_images(4))

        assert product.name == "Created elsewhere"
        assert catalog.count() == 1
        assert "https://bucket.example/products/0001/1.jpg" in caplog.text

    @pytest.mark.asyncio
    async def test_store_failure_logs_uploaded_image(self, extractor, object_store, catalog, caplog):
        class BrokenCatalog:
            def get(self, barcode):
                return None

            def create(self, product, source=""):
                raise CatalogError("disk I/O error")

        flow = CommunitySourcingFlow(extractor, object_store, BrokenCatalog())
        with caplog.at_level("WARNING", logger="glutenpeek.community"):
            with pytest.raises(CatalogError):
                await flow.submit("0001", make_images(4))

        assert len(object_store.uploads) == 1
        assert "https://bucket.example/products/0001/1.jpg" in caplog.text
