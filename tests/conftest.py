"""Pytest fixtures: a scripted backend and pipelines wired to it."""

import pytest

from quill.errors import BoundaryRejected
from quill.models.resource import UploadedResource
from quill.orchestrator.assembler import PromptAssembler
from quill.orchestrator.normalizer import DocumentNormalizer
from quill.orchestrator.pipeline import Pipeline
from quill.orchestrator.policies import default_policies


class FakeBackend:
    """Records prompts; fails on the listed 1-based call numbers."""

    name = "Fake"

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.prompts = []
        self.models = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        call = len(self.prompts)
        if call in self.fail_on:
            raise BoundaryRejected("Fake error 500: upstream exploded", status=500)
        return f"reply {call}"


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def make_pipeline():
    def _make(backend, pdf_mode="attach", unsupported_mode="skip"):
        def _factory(model):
            # Only the recording backend keeps a model log.
            if isinstance(backend, FakeBackend):
                backend.models.append(model)
            return backend

        return Pipeline(
            normalizer=DocumentNormalizer(pdf_mode=pdf_mode, unsupported_mode=unsupported_mode),
            assembler=PromptAssembler(policies=default_policies(), persona="Orhan"),
            backend_factory=_factory,
        )

    return _make


@pytest.fixture
def assembler():
    return PromptAssembler(policies=default_policies(), persona="Orhan")


@pytest.fixture
def cited_pdf():
    resource = UploadedResource.from_upload("chapter3.pdf", b"%PDF-1.7 fake", "application/pdf")
    resource.source_url = "https://example.edu/chapter3"
    return resource


@pytest.fixture
def make_backend():
    return FakeBackend
