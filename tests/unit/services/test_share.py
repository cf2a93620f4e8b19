"""
Unit tests for gallery share links.
"""

from photogallery.services.share import build_share_links, gallery_url, share_text


class TestShareLinks:
    def test_gallery_url_uses_site_url(self):
        assert gallery_url("hana") == "https://gallery.example.com/?gallery=hana"
        assert gallery_url("hana", site_url="http://localhost:8501/") == "http://localhost:8501/?gallery=hana"

    def test_share_text(self):
        assert share_text("Hana") == "Check out Hana's beautiful photo gallery!"

    def test_build_share_links(self):
        """Links are URI-component encoded the way browsers encode them."""
        links = build_share_links("hana", "Hana")

        encoded_url = "https%3A%2F%2Fgallery.example.com%2F%3Fgallery%3Dhana"
        assert links.gallery_url == "https://gallery.example.com/?gallery=hana"
        assert links.facebook == f"https://www.facebook.com/sharer/sharer.php?u={encoded_url}"
        assert links.twitter == (
            "https://twitter.com/intent/tweet?text=Check%20out%20Hana's%20beautiful%20photo%20gallery!"
            f"&url={encoded_url}"
        )
        assert links.email == (
            "mailto:?subject=Hana's%20Photo%20Gallery"
            "&body=Check%20out%20Hana's%20beautiful%20photo%20gallery!%0A%0Ahttps%3A%2F%2Fgallery.example.com"
            "%2F%3Fgallery%3Dhana"
        )

    def test_display_name_defaults_to_username(self):
        assert build_share_links("hana").text == "Check out hana's beautiful photo gallery!"
