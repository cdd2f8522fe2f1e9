import pytest

from leadsleuth.extractors.email import EmailExtractor
from leadsleuth.extractors.links import SocialLinkExtractor
from leadsleuth.extractors.normalizers import (
    TextCleaner,
    WebsiteNormalizer,
    clean_domain,
    domain_from_business_name,
    normalize_profile_url,
    phone_digits,
)
from leadsleuth.extractors.owner import RegexOwnerExtractor
from leadsleuth.extractors.phone import PhoneExtractor


class TestEmailExtractor:
    def setup_method(self):
        self.extractor = EmailExtractor()

    def test_extract_from_html_puts_mailto_first_and_dedupes(self):
        html = """
        <p>Write to Sales@Acme-HVAC.com or sales@acme-hvac.com</p>
        <a href="mailto:info@acme-hvac.com">Email us</a>
        """
        assert self.extractor.extract_from_html(html) == ["info@acme-hvac.com", "sales@acme-hvac.com"]

    def test_junk_addresses_filtered(self):
        text = "noreply@acme.com test@acme.com logo@2x.png x@sentry.io owner@acme.com"
        assert self.extractor.extract_from_text(text) == ["owner@acme.com"]

    def test_domain_filter(self):
        text = "info@acme.com jane@gmail.com"
        assert self.extractor.extract_from_text(text, domain="acme.com") == ["info@acme.com"]

    @pytest.mark.parametrize(
        "email, valid",
        [
            ("john.smith@acme.com", True),
            ("info@acme-hvac.com", True),
            ("john..smith@acme.com", False),
            (".john@acme.com", False),
            ("john@acme", False),
            ("not an email", False),
            ("", False),
            ("a" * 65 + "@acme.com", False),
        ],
    )
    def test_validate_format(self, email, valid):
        assert self.extractor.validate_format(email) is valid


class TestPhoneExtractor:
    def setup_method(self):
        self.extractor = PhoneExtractor()

    @pytest.mark.parametrize(
        "raw",
        ["(512) 555-0142", "512-555-0142", "512.555.0142", "+1 512 555 0142", "1-512-555-0142"],
    )
    def test_normalize_formats(self, raw):
        assert self.extractor.normalize(raw) == "(512) 555-0142"

    def test_normalize_rejects_short_numbers(self):
        assert self.extractor.normalize("555-0142") is None
        assert self.extractor.normalize("") is None

    def test_extract_and_normalize_dedupes_tel_links_first(self):
        html = '<a href="tel:+15125550199">Call</a>'
        text = "Office: (512) 555-0142. Call 512.555.0199 or (512) 555-0142"
        assert self.extractor.extract_and_normalize(text, html) == ["(512) 555-0199", "(512) 555-0142"]


class TestSocialLinkExtractor:
    def test_extract_linkedin_and_facebook(self):
        html = """
        <a href="https://www.linkedin.com/company/acme-hvac/">LinkedIn</a>
        <a href="https://www.facebook.com/AcmeHVAC">Facebook</a>
        <a href="https://www.facebook.com/sharer.php">Share</a>
        <a href="https://uk.linkedin.com/in/john-smith">John</a>
        """
        linkedin, facebook = SocialLinkExtractor().extract(html)
        assert linkedin == ["https://www.linkedin.com/company/acme-hvac", "https://uk.linkedin.com/in/john-smith"]
        assert facebook == ["https://www.facebook.com/AcmeHVAC"]

    def test_empty_html(self):
        assert SocialLinkExtractor().extract("") == ([], [])


class TestNormalizers:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("acme-hvac.com", "https://acme-hvac.com"),
            ("HTTP://Acme.com/about/", "http://acme.com/about"),
            ("localhost", None),
            ("", None),
        ],
    )
    def test_website_normalize(self, url, expected):
        assert WebsiteNormalizer.normalize(url) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("https://www.acme-hvac.com/contact?x=1", "acme-hvac.com"),
            ("acme.com:8080", "acme.com"),
            ("WWW.Acme.com", "acme.com"),
            ("nodot", ""),
            (None, ""),
        ],
    )
    def test_clean_domain(self, value, expected):
        assert clean_domain(value) == expected

    def test_domain_from_business_name(self):
        assert domain_from_business_name("Acme HVAC, LLC") == "acmehvac.com"
        assert domain_from_business_name("") == ""

    def test_profile_url_normalization(self):
        assert normalize_profile_url("https://www.linkedin.com/in/JohnSmith/") == "linkedin.com/in/johnsmith"
        assert normalize_profile_url("https://uk.linkedin.com/in/johnsmith") == "linkedin.com/in/johnsmith"
        assert normalize_profile_url("/in/johnsmith") == "linkedin.com/in/johnsmith"

    def test_phone_digits(self):
        assert phone_digits("+1 (512) 555-0142") == "5125550142"
        assert phone_digits("(512) 555-0142") == "5125550142"

    def test_clean_html_drops_scripts_and_optionally_layout(self):
        html = "<html><body><nav>Home About</nav><script>var a;</script><p>Hello   there</p></body></html>"
        assert TextCleaner.clean_html(html) == "Home About Hello there"
        assert TextCleaner.clean_html(html, drop_layout=True) == "Hello there"


class TestRegexOwnerExtractor:
    def setup_method(self):
        self.extractor = RegexOwnerExtractor()

    @pytest.mark.parametrize(
        "text, name, title",
        [
            ("Acme HVAC is owned and operated by John Smith since 1998.", "John Smith", "Owner"),
            ("The company was founded in 1985 by Maria Lopez.", "Maria Lopez", "Founder"),
            ("Questions? Ask Dave Miller, President of Acme.", "Dave Miller", "President"),
            ("Owner: Sarah Connor", "Sarah Connor", "Owner"),
            ("Tom Baker - CEO", "Tom Baker", "CEO"),
            ("Meet our founder, Jim Beam.", "Jim Beam", "Founder"),
        ],
    )
    def test_patterns(self, text, name, title):
        guess = self.extractor.extract_sync(text)
        assert (guess.name, guess.title, guess.method) == (name, title, "regex")

    def test_headings_are_not_names(self):
        guess = self.extractor.extract_sync("About Us - Owner operated since 1990")
        assert guess.name is None

    def test_no_owner(self):
        guess = self.extractor.extract_sync("We fix furnaces and air conditioners.")
        assert guess.name is None
        assert guess.method == "none"
