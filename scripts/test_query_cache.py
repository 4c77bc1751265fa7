"""Tests for the revalidating query cache and the cached catalog queries."""

from query_cache import CacheEntry, MemoryCacheBackend, RevalidatingCache
from catalog_queries import CatalogQueries
from catalog_settings import Settings


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class CountingCompute:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return f"value-{self.calls}"


class TestRevalidatingCache:
    def test_fresh_entries_are_reused(self):
        clock = FakeClock()
        cache = RevalidatingCache(clock=clock)
        compute = CountingCompute()

        first = cache.get_or_compute(("q", "a"), compute, revalidate=60)
        clock.now += 59
        second = cache.get_or_compute(("q", "a"), compute, revalidate=60)

        assert first == second == "value-1"
        assert compute.calls == 1

    def test_stale_entries_are_recomputed(self):
        clock = FakeClock()
        cache = RevalidatingCache(clock=clock)
        compute = CountingCompute()

        cache.get_or_compute(("q",), compute, revalidate=60)
        clock.now += 60
        value = cache.get_or_compute(("q",), compute, revalidate=60)

        assert value == "value-2"

    def test_keys_include_arguments(self):
        cache = RevalidatingCache(clock=FakeClock())
        compute = CountingCompute()

        cache.get_or_compute(("q", "a"), compute, revalidate=60)
        cache.get_or_compute(("q", "b"), compute, revalidate=60)

        assert compute.calls == 2

    def test_no_window_never_goes_stale(self):
        clock = FakeClock()
        cache = RevalidatingCache(clock=clock)
        compute = CountingCompute()

        cache.get_or_compute(("q",), compute, revalidate=None)
        clock.now += 10**9
        cache.get_or_compute(("q",), compute, revalidate=None)

        assert compute.calls == 1

    def test_disabled_cache_always_computes_and_stores_nothing(self):
        backend = MemoryCacheBackend()
        cache = RevalidatingCache(backend, enabled=False)
        compute = CountingCompute()

        cache.get_or_compute(("q",), compute, revalidate=60)
        cache.get_or_compute(("q",), compute, revalidate=60)

        assert compute.calls == 2
        assert len(backend) == 0

    def test_memory_backend_evicts_oldest_past_limit(self):
        backend = MemoryCacheBackend(max_entries=3)
        cache = RevalidatingCache(backend, clock=FakeClock())

        for term in ["a", "b", "c", "d", "e"]:
            cache.get_or_compute(("search", term), CountingCompute(), revalidate=60)

        assert len(backend) == 3
        assert backend.get(("search", "a")) is None
        assert backend.get(("search", "b")) is None
        assert backend.get(("search", "e")).value == "value-1"

    def test_restored_key_counts_as_newest(self):
        backend = MemoryCacheBackend(max_entries=2)
        backend.set(("a",), CacheEntry("a", 0.0))
        backend.set(("b",), CacheEntry("b", 0.0))
        backend.set(("a",), CacheEntry("a2", 1.0))
        backend.set(("c",), CacheEntry("c", 2.0))

        assert backend.get(("b",)) is None
        assert backend.get(("a",)).value == "a2"

    def test_pluggable_backend(self):
        class DictBackend:
            def __init__(self):
                self.data = {}

            def get(self, key):
                return self.data.get(key)

            def set(self, key, entry):
                self.data[key] = entry

            def clear(self):
                self.data.clear()

        backend = DictBackend()
        backend.set(("q",), CacheEntry(value="seeded", stored_at=1000.0))
        cache = RevalidatingCache(backend, clock=FakeClock(1001.0))

        assert cache.get_or_compute(("q",), CountingCompute(), revalidate=60) == "seeded"


class TestCatalogQueries:
    def test_cached_per_argument(self, memory_store):
        memory_store.results = [
            {"slug": "red-pot", "name": "Red Pot"},
            {"slug": "blue-pot", "name": "Blue Pot"},
        ]
        queries = CatalogQueries(memory_store, RevalidatingCache(clock=FakeClock()))

        assert queries.get_product_details("red-pot")["name"] == "Red Pot"
        assert queries.get_product_details("red-pot")["name"] == "Red Pot"
        assert queries.get_product_details("blue-pot")["name"] == "Blue Pot"
        assert len(memory_store.queries) == 2

    def test_keyword_arguments_are_accepted(self, memory_store):
        memory_store.results = [{"slug": "red-pot", "name": "Red Pot"}]
        queries = CatalogQueries(memory_store, RevalidatingCache(clock=FakeClock()))

        assert queries.get_product_details(product_slug="red-pot")["name"] == "Red Pot"
        assert queries.get_product_details(product_slug="red-pot")["name"] == "Red Pot"
        assert len(memory_store.queries) == 1
        assert memory_store.queries[0][1] == ["red-pot"]

    def test_from_settings_bounds_the_cache(self, memory_store):
        settings = Settings(
            _env_file=None,
            catalog_db_url="postgresql://localhost/catalog",
            catalog_db_auth_token="t",
            cache_max_entries=2,
        )

        queries = CatalogQueries.from_settings(memory_store, settings)

        assert queries.cache.enabled
        assert queries.cache.backend.max_entries == 2

    def test_development_mode_bypasses_cache(self, memory_store):
        memory_store.results = [{"count": 3}, {"count": 4}]
        queries = CatalogQueries(memory_store, RevalidatingCache(enabled=False))

        assert queries.get_product_count() == 3
        assert queries.get_product_count() == 4

    def test_search_uses_search_window(self, memory_store):
        clock = FakeClock()
        queries = CatalogQueries(
            memory_store,
            RevalidatingCache(clock=clock),
            listing_revalidate=86400,
            search_revalidate=7200,
        )

        queries.get_search_results("red")
        clock.now += 7200
        queries.get_search_results("red")

        assert len(memory_store.queries) == 2

    def test_whitespace_search_issues_no_query(self, memory_store):
        queries = CatalogQueries(memory_store, RevalidatingCache(enabled=False))

        assert queries.get_search_results("   ") == []
        assert memory_store.queries == []

    def test_collections_are_grouped_with_categories(self, memory_store):
        memory_store.results = [
            [{"id": 1, "name": "Garden", "slug": "garden"}, {"id": 2, "name": "Tools", "slug": "tools"}],
            [{"slug": "hammers", "name": "Hammers", "collection_id": 2, "image_url": None}],
        ]
        queries = CatalogQueries(memory_store, RevalidatingCache(enabled=False))

        collections = queries.get_collections()

        assert collections[0]["categories"] == []
        assert [c["slug"] for c in collections[1]["categories"]] == ["hammers"]

    def test_category_nests_subcollections_and_subcategories(self, memory_store):
        memory_store.results = [
            {"slug": "planters", "name": "Planters", "collection_id": 1, "image_url": None},
            [{"id": 5, "name": "Pots", "category_slug": "planters"}],
            [{"slug": "clay-pots", "name": "Clay Pots", "subcollection_id": 5, "image_url": None}],
        ]
        queries = CatalogQueries(memory_store, RevalidatingCache(enabled=False))

        category = queries.get_category("planters")

        assert category["subcollections"][0]["subcategories"][0]["slug"] == "clay-pots"

    def test_unknown_category(self, memory_store):
        queries = CatalogQueries(memory_store, RevalidatingCache(enabled=False))
        assert queries.get_category("nope") is None
