"""Tests for navigation cursor resolution."""

from tams_bridge.protocol import (
    NormalizedResponse,
    PaginationMetadata,
    get_all_navigation_cursors,
    get_current_limit,
    get_first_page_cursor,
    get_last_page_cursor,
    get_next_page_cursor,
    get_previous_page_cursor,
    get_response_timerange,
    get_total_count,
    has_next_page,
    has_previous_page,
    normalize_response,
)


class TestCursorResolution:
    """Link relations take precedence over X-Paging keys."""

    def test_link_wins_over_paging_key(self):
        """The page parameter of the link relation is preferred."""
        response = normalize_response(
            [],
            {
                "Link": '</flows?page=from-link>; rel="next"',
                "X-Paging-NextKey": "from-header",
            },
        )

        assert get_next_page_cursor(response) == "from-link"

    def test_falls_back_to_paging_key(self):
        """Without a link relation the paging key is used."""
        response = normalize_response([], {"X-Paging-PrevKey": "prev-key"})

        assert get_previous_page_cursor(response) == "prev-key"
        assert get_next_page_cursor(response) is None

    def test_link_without_page_param_falls_back(self):
        """A relation whose target has no page parameter does not count."""
        response = normalize_response(
            [],
            {"Link": '</flows?limit=10>; rel="next"', "X-Paging-NextKey": "key"},
        )

        assert get_next_page_cursor(response) == "key"

    def test_first_and_last(self):
        """First and last cursors resolve the same way."""
        response = normalize_response(
            [],
            {
                "Link": '</flows?page=1>; rel="first"',
                "X-Paging-LastKey": "99",
            },
        )

        assert get_first_page_cursor(response) == "1"
        assert get_last_page_cursor(response) == "99"

    def test_all_cursors_only_resolved(self):
        """get_all_navigation_cursors omits missing relations."""
        response = normalize_response(
            [],
            {"Link": '</flows?page=n>; rel="next"', "X-Paging-FirstKey": "f"},
        )

        assert get_all_navigation_cursors(response) == {"next": "n", "first": "f"}


class TestNavigationQueries:
    """Tests for derived navigation values."""

    def test_has_pages(self):
        """Page presence follows cursor resolution."""
        response = NormalizedResponse(pagination=PaginationMetadata(next_key="n"))

        assert has_next_page(response) is True
        assert has_previous_page(response) is False

    def test_counts_default_to_zero(self):
        """Unknown count and limit read as 0."""
        response = NormalizedResponse()

        assert get_total_count(response) == 0
        assert get_current_limit(response) == 0
        assert get_response_timerange(response) is None

    def test_reported_values(self):
        """Reported count, limit and timerange are returned."""
        response = NormalizedResponse(
            pagination=PaginationMetadata(count=42, limit=10, timerange="[0:0_5:0)")
        )

        assert get_total_count(response) == 42
        assert get_current_limit(response) == 10
        assert get_response_timerange(response) == "[0:0_5:0)"
