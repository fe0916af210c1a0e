import random
import unittest

from name_tester.combinations import (
    count_combinations,
    filter_combinations,
    filter_duplicate_middle_last_names,
    generate_combinations,
    generate_initials,
    prepare_display,
    sample_combinations,
    shuffle_combinations,
    sort_combinations,
)


class TestInitials(unittest.TestCase):
    def test_with_middle_name(self):
        self.assertEqual(generate_initials("Thomas", ["Alexander"], "Smith"), "TAS")

    def test_without_middle_name(self):
        self.assertEqual(generate_initials("Thomas", [], "Smith"), "TS")

    def test_several_middle_tokens_and_lowercase(self):
        self.assertEqual(generate_initials("ada", ["mary", "", "anne"], "lovelace"), "AMAL")

    def test_empty_components(self):
        self.assertEqual(generate_initials("", [], ""), "")


class TestGenerateCombinations(unittest.TestCase):
    def setUp(self):
        self.first = ["Elizabeth (Liz, Beth)", "Marie"]
        self.middle = ["Anne", "Rose (Rosie)"]
        self.last = ["Smith"]

    def test_record_count_is_sum_of_variant_products(self):
        combinations = generate_combinations(self.first, self.middle, self.last)
        # (2 + 1) first variants x (1 + 1) middle variants x 1 last variant
        self.assertEqual(len(combinations), 6)
        self.assertEqual(len({c.id for c in combinations}), 6)

    def test_nested_order(self):
        combinations = generate_combinations(self.first, self.middle, self.last)
        self.assertEqual(
            [(c.full_name, c.short_name) for c in combinations],
            [
                ("Elizabeth Anne Smith", "Liz Anne Smith"),
                ("Elizabeth Anne Smith", "Beth Anne Smith"),
                ("Elizabeth Rose Smith", "Liz Rosie Smith"),
                ("Elizabeth Rose Smith", "Beth Rosie Smith"),
                ("Marie Anne Smith", "Marie Anne Smith"),
                ("Marie Rose Smith", "Marie Rosie Smith"),
            ],
        )

    def test_single_nickname_end_to_end(self):
        combinations = generate_combinations(["Thomas (Tom)"], ["Alexander"], ["Smith"])
        self.assertEqual(len(combinations), 1)
        c = combinations[0]
        self.assertEqual(c.first_name, "Thomas")
        self.assertEqual(c.first_name_short, "Tom")
        self.assertEqual(c.full_name, "Thomas Alexander Smith")
        self.assertEqual(c.short_name, "Tom Alexander Smith")
        self.assertEqual(c.initials, "TAS")
        self.assertEqual(c.short_initials, "TAS")
        self.assertEqual(c.id, "thomas-alexander-smith-tom-alexander-smith")

    def test_multi_word_middle_name(self):
        c = generate_combinations(["Ada"], ["Mary Anne (May Belle)"], ["King"])[0]
        self.assertEqual(c.initials, "AMAK")
        self.assertEqual(c.short_initials, "AMBK")
        self.assertEqual(c.id, "ada-mary_anne-king-ada-may_belle-king")

    def test_duplicate_entries_are_not_merged(self):
        combinations = generate_combinations(["Sam", "Sam", "Sam"], ["Lee"], ["Ray"])
        self.assertEqual(len(combinations), 3)
        self.assertEqual(
            [c.id for c in combinations],
            ["sam-lee-ray-sam-lee-ray", "sam-lee-ray-sam-lee-ray-2", "sam-lee-ray-sam-lee-ray-3"],
        )

    def test_hyphenated_and_spaced_names_get_distinct_ids(self):
        combinations = generate_combinations(["Bo"], ["Mary-Ann", "Mary"], ["Lee", "Ann Lee"])
        self.assertEqual(
            [c.full_name for c in combinations],
            ["Bo Mary-Ann Lee", "Bo Mary-Ann Ann Lee", "Bo Mary Lee", "Bo Mary Ann Lee"],
        )
        ids = [c.id for c in combinations]
        self.assertEqual(len(set(ids)), 4)
        self.assertEqual(ids[0], "bo-mary%2dann-lee-bo-mary%2dann-lee")
        self.assertEqual(ids[3], "bo-mary-ann_lee-bo-mary-ann_lee")

    def test_names_differing_only_by_case_get_distinct_ids(self):
        combinations = generate_combinations(["Tom", "tom"], ["Lee"], ["Ray"])
        self.assertEqual([c.id for c in combinations], ["tom-lee-ray-tom-lee-ray", "tom-lee-ray-tom-lee-ray-2"])

    def test_separator_characters_in_names_are_escaped(self):
        c, = generate_combinations(["Jo_Ann"], ["100%"], ["Ray"])
        self.assertEqual(c.id, "jo%5fann-100%25-ray-jo%5fann-100%25-ray")

    def test_ids_unique_for_every_input(self):
        combinations = generate_combinations(
            ["Mary-Ann", "Mary", "Tom", "tom", "Tom"], ["Ann Lee", "Lee", "Ann-Lee"], ["Cole", "Lee Cole"]
        )
        self.assertEqual(len({c.id for c in combinations}), len(combinations))

    def test_deterministic(self):
        a = generate_combinations(self.first, self.middle, self.last)
        b = generate_combinations(self.first, self.middle, self.last)
        self.assertEqual([c.id for c in a], [c.id for c in b])

    def test_empty_slot_yields_nothing(self):
        self.assertEqual(generate_combinations([], self.middle, self.last), [])
        self.assertEqual(generate_combinations(self.first, [], self.last), [])
        self.assertEqual(generate_combinations(self.first, self.middle, ["  "]), [])

    def test_count_combinations(self):
        self.assertEqual(count_combinations("\n".join(self.first), "\n".join(self.middle), "Smith"), 6)
        self.assertEqual(count_combinations("Tom", "", "Smith"), 0)


class TestFilters(unittest.TestCase):
    def test_duplicate_middle_last_names(self):
        combinations = generate_combinations(["Tom"], ["Smith", "Smith Jones", "James"], ["smith"])
        kept = filter_duplicate_middle_last_names(combinations)
        self.assertEqual([c.middle_name for c in kept], ["James"])

    def test_duplicate_filter_uses_full_forms(self):
        combinations = generate_combinations(["Tom"], ["James (Smith)"], ["Smith"])
        self.assertEqual(len(filter_duplicate_middle_last_names(combinations)), 1)

    def test_search_matches_full_short_and_initials(self):
        combinations = generate_combinations(["Elizabeth (Liz, Beth)"], ["Anne"], ["Smith"])
        self.assertEqual(len(filter_combinations(combinations, "ELIZABETH")), 2)
        # "liz" and "beth anne" are also inside the full name Elizabeth Anne Smith
        self.assertEqual(len(filter_combinations(combinations, "liz")), 2)
        self.assertEqual([c.short_name for c in filter_combinations(combinations, "liz anne")], ["Liz Anne Smith"])
        self.assertEqual(len(filter_combinations(combinations, "beth anne")), 2)
        self.assertEqual(len(filter_combinations(combinations, "eas")), 2)
        self.assertEqual(len(filter_combinations(combinations, "bas")), 1)
        self.assertEqual(filter_combinations(combinations, "zzz"), [])

    def test_blank_search_returns_input(self):
        combinations = generate_combinations(["Tom"], ["Lee"], ["Ray"])
        self.assertIs(filter_combinations(combinations, "   "), combinations)


class TestOrdering(unittest.TestCase):
    def setUp(self):
        self.combinations = generate_combinations(["dora", "Carl", "adam", "Beth"], ["Lee"], ["Smith"])

    def test_alphabetical_sort_is_case_insensitive_and_idempotent(self):
        once = sort_combinations(self.combinations, True)
        self.assertEqual(
            [c.full_name for c in once],
            ["adam Lee Smith", "Beth Lee Smith", "Carl Lee Smith", "dora Lee Smith"],
        )
        self.assertEqual(sort_combinations(once, True), once)

    def test_alphabetical_sort_is_stable(self):
        combinations = generate_combinations(["Tom (T, Tommy)"], ["Lee"], ["Ray"])
        self.assertEqual(sort_combinations(combinations, True), combinations)

    def test_random_order_is_a_permutation(self):
        shuffled = sort_combinations(self.combinations, False, random.Random(7))
        self.assertCountEqual(shuffled, self.combinations)

    def test_seeded_shuffle_is_reproducible(self):
        combinations = generate_combinations([f"Name{i}" for i in range(20)], ["Lee"], ["Smith"])
        self.assertEqual(
            shuffle_combinations(combinations, random.Random(3)),
            shuffle_combinations(combinations, random.Random(3)),
        )

    def test_shuffle_leaves_input_untouched(self):
        before = list(self.combinations)
        shuffle_combinations(self.combinations, random.Random(1))
        self.assertEqual(self.combinations, before)


class TestSampling(unittest.TestCase):
    def setUp(self):
        self.combinations = generate_combinations([f"Name{i:02d}" for i in range(30)], ["Lee"], ["Smith"])

    def test_sample_is_sorted_and_bounded(self):
        sample = sample_combinations(self.combinations, 10, random.Random(5))
        self.assertEqual(len(sample), 10)
        self.assertEqual(sample, sorted(sample, key=lambda c: c.full_name))
        self.assertTrue(set(sample) <= set(self.combinations))

    def test_sample_larger_than_input(self):
        sample = sample_combinations(self.combinations, 100, random.Random(5))
        self.assertEqual(sample, sort_combinations(self.combinations, True))

    def test_prepare_display_samples_above_threshold(self):
        view = prepare_display(self.combinations, threshold=20, sample_size=5, rng=random.Random(2))
        self.assertTrue(view.sampled)
        self.assertEqual(view.total, 30)
        self.assertEqual(view.matched, 30)
        self.assertEqual(len(view.items), 5)
        self.assertEqual(view.items, sorted(view.items, key=lambda c: c.full_name))

    def test_prepare_display_sample_ignores_random_mode(self):
        view = prepare_display(self.combinations, alphabetical=False, threshold=20, sample_size=5, rng=random.Random(2))
        self.assertEqual(view.items, sorted(view.items, key=lambda c: c.full_name))

    def test_prepare_display_show_all(self):
        view = prepare_display(self.combinations, show_all=True, threshold=20, sample_size=5)
        self.assertFalse(view.sampled)
        self.assertEqual(len(view.items), 30)

    def test_prepare_display_filters_before_sampling(self):
        combinations = generate_combinations(["Tom", "Ann"], ["Smith", "Lee"], ["Smith"])
        view = prepare_display(combinations, search_term="tom", hide_duplicates=True, threshold=20, sample_size=5)
        self.assertFalse(view.sampled)
        self.assertEqual(view.total, 4)
        self.assertEqual([c.full_name for c in view.items], ["Tom Lee Smith"])


if __name__ == "__main__":
    unittest.main(verbosity=2)
