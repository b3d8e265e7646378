"""Tests for review flags."""

import numpy as np
import pandas as pd
import pytest

from clea_iso.matching.flagging import REVIEW_THRESHOLD, flag_matches


def matches(rows):
    return pd.DataFrame(rows, columns=["id", "A", "B", "match_probability"])


class TestFlagMatches:
    def test_single_confident_match_not_flagged(self):
        df = flag_matches(matches([("CAN_2015", "Calgary", "Alberta", 0.95)]))
        assert df["multi_match"].tolist() == [0]
        assert df["flag"].tolist() == [0]

    def test_no_match_flagged(self):
        df = flag_matches(matches([("CAN_2015", "West Nova", np.nan, np.nan)]))
        assert df["multi_match"].tolist() == [0]
        assert df["flag"].tolist() == [1]

    def test_low_probability_flagged(self):
        df = flag_matches(matches([("BRA_1950", "R, G, do Sul", "Rio Grande do Sul", 0.197)]))
        assert df["flag"].tolist() == [1]

    def test_threshold_itself_not_flagged(self):
        df = flag_matches(matches([("X", "a", "b", REVIEW_THRESHOLD)]))
        assert df["flag"].tolist() == [0]

    def test_multiplicity_dominates_confidence(self):
        df = flag_matches(
            matches(
                [
                    ("CAN_2015", "West Nova", "Ontario", 0.9),
                    ("CAN_2015", "West Nova", "Nova Scotia", 0.8),
                ]
            )
        )
        assert df["multi_match"].tolist() == [1, 1]
        assert df["flag"].tolist() == [1, 1]

    def test_second_match_flips_flags(self):
        one = matches([("CAN_2015", "Calgary", "Alberta", 0.9)])
        two = pd.concat([one, matches([("CAN_2015", "Calgary", "Saskatchewan", 0.5)])], ignore_index=True)

        assert flag_matches(one)["flag"].tolist() == [0]
        assert flag_matches(two)["flag"].tolist() == [1, 1]

    def test_same_name_in_other_election_is_separate(self):
        df = flag_matches(
            matches(
                [
                    ("CAN_2015", "Calgary", "Alberta", 0.9),
                    ("CAN_2019", "Calgary", "Alberta", 0.9),
                ]
            )
        )
        assert df["multi_match"].tolist() == [0, 0]

    @pytest.mark.parametrize(
        "b, p",
        [("x", 0.0), ("x", 0.19), ("x", 0.2), ("x", 1.0), (np.nan, np.nan)],
    )
    def test_flag_definition(self, b, p):
        df = flag_matches(matches([("id", "name", b, p)]))
        expected = int(pd.isna(b) or p < REVIEW_THRESHOLD)
        assert df["flag"].iloc[0] == expected

    def test_does_not_modify_input(self):
        df = matches([("CAN_2015", "Calgary", "Alberta", 0.9)])
        flag_matches(df)
        assert "flag" not in df.columns

    def test_empty_input(self):
        df = flag_matches(matches([]))
        assert df.empty
        assert {"multi_match", "flag"} <= set(df.columns)
