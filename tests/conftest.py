"""Shared fakes for the resolution and classification pipeline."""

from datetime import datetime, timedelta, timezone

import pytest

from glutenpeek.ai import Classifier, ExtractedProduct, Extractor, GlutenAssessment
from glutenpeek.db import CatalogDB, ScanJournal, StatusDB
from glutenpeek.external import ExternalCatalog
from glutenpeek.models import ImageBlob, Product, ProductStatus
from glutenpeek.notify import Notifier
from glutenpeek.storage import ObjectStore

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeExternalCatalog(ExternalCatalog):
    def __init__(self, products=None, error=None):
        self.products = products or {}
        self.error = error
        self.calls = []

    async def lookup(self, barcode):
        self.calls.append(barcode)
        if self.error is not None:
            raise self.error
        return self.products.get(barcode)


class FakeExtractor(Extractor):
    def __init__(self, result=None, error=None):
        self.result = result or ExtractedProduct(name="Granola Bar", ingredients=["oats"])
        self.error = error
        self.calls = []

    async def extract_product_info(self, images, barcode):
        self.calls.append((len(images), barcode))
        if self.error is not None:
            raise self.error
        return self.result


class FakeClassifier(Classifier):
    def __init__(self, label="contains-gluten", explanation="", error=None):
        self.label = label
        self.explanation = explanation
        self.error = error
        self.calls = []

    async def check_status(self, name, ingredients, current_label):
        self.calls.append((name, list(ingredients), current_label))
        if self.error is not None:
            raise self.error
        return GlutenAssessment(label=self.label, explanation=self.explanation)


class FakeObjectStore(ObjectStore):
    def __init__(self, error=None):
        self.error = error
        self.uploads = []

    async def upload(self, blob, path_prefix):
        self.uploads.append((blob, path_prefix))
        if self.error is not None:
            raise self.error
        return f"https://bucket.example/{path_prefix}/{len(self.uploads)}.{blob.extension}"


class FakeNotifier(Notifier):
    def __init__(self):
        self.changes = []

    async def notify(self, change):
        self.changes.append(change)


def make_product(barcode="0001", name="Granola Bar", *, label="unknown", age=timedelta(0),
                 ingredients=("oats", "honey", "almonds")):
    return Product(
        barcode=barcode,
        name=name,
        ingredients=list(ingredients),
        picture_url="",
        status=ProductStatus(label=label, explanation="", last_evaluated_at=NOW - age),
    )


def make_images(count, content_type="image/jpeg", size=16):
    return [
        ImageBlob(data=b"\x00" * size, filename=f"photo{i}.jpg", content_type=content_type)
        for i in range(count)
    ]


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "glutenpeek.db"


@pytest.fixture
def catalog(db_path):
    db = CatalogDB(db_path)
    yield db
    db.close()


@pytest.fixture
def status_db(db_path):
    db = StatusDB(db_path)
    yield db
    db.close()


@pytest.fixture
def journal(db_path):
    j = ScanJournal(db_path)
    yield j
    j.close()
