"""Tests for destination metadata mapping."""
from asset_migrator.models import AssetDescriptor
from asset_migrator.services.metadata_mapper import (
    DEFAULT_CONTENT_TYPE,
    ObjectMetadataMapper,
    content_type_for,
)


class TestObjectMetadataMapper:
    def test_build_full_asset(self):
        asset = AssetDescriptor(
            public_id="products/shoe",
            format="jpg",
            resource_type="image",
            bytes=1024,
            width=800,
            height=600,
            created_at="2024-01-02T03:04:05Z",
            tags=frozenset({"summer", "sale"}),
            context={"alt": "Red shoe"},
        )

        metadata = ObjectMetadataMapper.build(asset)

        assert metadata == {
            "original-public-id": "products/shoe",
            "resource-type": "image",
            "cloudinary-created-at": "2024-01-02T03:04:05Z",
            "original-size": "1024",
            "width": "800",
            "height": "600",
            "tags": "sale,summer",
            "context-alt": "Red shoe",
        }

    def test_build_minimal_asset(self):
        metadata = ObjectMetadataMapper.build(AssetDescriptor(public_id="a"))
        assert metadata == {"original-public-id": "a", "resource-type": "image"}

    def test_context_survives_prefixing(self):
        context = {"alt": "x", "caption": "y"}
        metadata = ObjectMetadataMapper.context_to_metadata(context)

        assert set(metadata) == {"context-alt", "context-caption"}
        assert ObjectMetadataMapper.context_from_metadata({**metadata, "width": "1"}) == context


def test_content_type_for():
    assert content_type_for("jpg") == "image/jpeg"
    assert content_type_for("JPEG") == "image/jpeg"
    assert content_type_for("mp4") == "video/mp4"
    assert content_type_for("psd") == DEFAULT_CONTENT_TYPE
    assert content_type_for("") == DEFAULT_CONTENT_TYPE


class TestMetadataEncoding:
    def test_non_ascii_values_are_ascii_on_the_wire(self):
        asset = AssetDescriptor(
            public_id="menus/crème brûlée",
            tags=frozenset({"été", "summer,sale"}),
            context={"alt": "café", "légende": "100% arabica"},
        )

        metadata = ObjectMetadataMapper.build(asset)

        for key, value in metadata.items():
            assert key.isascii() and value.isascii()
        assert metadata["original-public-id"] == "menus/cr%C3%A8me br%C3%BBl%C3%A9e"
        assert metadata["context-alt"] == "caf%C3%A9"
        assert metadata["tags"] == "summer%2Csale,%C3%A9t%C3%A9"

    def test_non_ascii_context_survives_prefixing(self):
        context = {"alt": "café", "légende": "100% arabica", "plain": "Red shoe"}
        metadata = ObjectMetadataMapper.context_to_metadata(context)

        assert metadata["context-plain"] == "Red shoe"
        assert ObjectMetadataMapper.context_from_metadata(metadata) == context
