import pytest

from ecoinsight.core.pagination import MAX_PAGE, Page, parse_page


class TestParsePage:
    @pytest.mark.parametrize(
        ("page", "limit", "expected"),
        [
            (None, None, Page(1, 10)),
            ("3", "20", Page(3, 20)),
            ("0", "500", Page(1, 100)),
            ("-2", "0", Page(1, 1)),
            ("abc", "xyz", Page(1, 10)),
            (" 2 ", "100", Page(2, 100)),
            ("100000000000000000000", "10", Page(MAX_PAGE, 10)),
        ],
    )
    def test_parse(self, page, limit, expected):
        assert parse_page(page, limit) == expected

    def test_skip_and_meta(self):
        page = Page(page=3, limit=10)
        assert page.skip == 20
        assert page.meta(25) == {"page": 3, "limit": 10, "total": 25, "pages": 3}
        assert page.meta(0)["pages"] == 0

    def test_huge_page_keeps_skip_within_int64(self):
        page = parse_page(str(10**30), "100")
        assert page.page == MAX_PAGE
        assert page.skip < 2**63
