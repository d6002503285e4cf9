"""
Unit tests for GTF attribute column parsing.
"""

import unittest
import warnings

from gtfcounter.io.gtf import (
    MISSING,
    AttributeParseWarning,
    format_attributes,
    parse_attributes,
)

GENCODE_TRANSCRIPT = (
    'gene_id "ENSG00000223972.5"; transcript_id "ENST00000456328.2"; '
    'gene_type "transcribed_unprocessed_pseudogene"; gene_name "DDX11L1"; '
    'transcript_type "lncRNA"; transcript_name "DDX11L1-202"; '
    'transcript_support_level "1"; tag "basic";'
)


class TestParseAttributes(unittest.TestCase):

    def test_two_keys(self):
        parsed = parse_attributes('gene_id "ENSG00000223972.5"; transcript_id "ENST00000456328.2";')
        self.assertEqual(parsed, {"gene_id": "ENSG00000223972.5", "transcript_id": "ENST00000456328.2"})

    def test_requested_key_absent_is_missing(self):
        parsed = parse_attributes('gene_id "ENSG00000223972.5";', keys=["gene_id", "gene_name"])
        self.assertEqual(parsed["gene_id"], "ENSG00000223972.5")
        self.assertIs(parsed["gene_name"], MISSING)
        self.assertIsNot(parsed["gene_name"], "")

    def test_key_not_matched_inside_longer_key(self):
        parsed = parse_attributes('transcript_support_level "1";', keys=["level"])
        self.assertEqual(parsed, {"level": MISSING})

    def test_longer_key_still_found_next_to_short_key(self):
        parsed = parse_attributes('level "2"; transcript_support_level "1";', keys=["transcript_support_level", "level"])
        self.assertEqual(parsed, {"transcript_support_level": "1", "level": "2"})
        self.assertEqual(list(parsed), ["transcript_support_level", "level"])

    def test_duplicate_key_keeps_first(self):
        self.assertEqual(parse_attributes('gene_type "A"; gene_type "B";'), {"gene_type": "A"})

    def test_empty_text(self):
        self.assertEqual(parse_attributes(""), {})
        self.assertEqual(parse_attributes("   "), {})
        self.assertEqual(parse_attributes("", keys=["gene_id", "level"]), {"gene_id": MISSING, "level": MISSING})

    def test_keys_order_and_key_set(self):
        parsed = parse_attributes(GENCODE_TRANSCRIPT, keys=["tag", "gene_name"])
        self.assertEqual(list(parsed), ["tag", "gene_name"])
        self.assertEqual(parsed["gene_name"], "DDX11L1")

    def test_all_keys_in_first_seen_order(self):
        parsed = parse_attributes(GENCODE_TRANSCRIPT)
        self.assertEqual(
            list(parsed),
            [
                "gene_id",
                "transcript_id",
                "gene_type",
                "gene_name",
                "transcript_type",
                "transcript_name",
                "transcript_support_level",
                "tag",
            ],
        )

    def test_separator_inside_value(self):
        parsed = parse_attributes('note "a; b c"; gene_id "G1";')
        self.assertEqual(parsed, {"note": "a; b c", "gene_id": "G1"})

    def test_whitespace_is_insignificant(self):
        parsed = parse_attributes('  gene_id   "G1" ;gene_name\t"ABC";  ')
        self.assertEqual(parsed, {"gene_id": "G1", "gene_name": "ABC"})

    def test_missing_trailing_separator(self):
        self.assertEqual(parse_attributes('gene_id "G1"; gene_name "ABC"'), {"gene_id": "G1", "gene_name": "ABC"})

    def test_empty_entries_ignored(self):
        self.assertEqual(parse_attributes(';; gene_id "G1";;'), {"gene_id": "G1"})

    def test_empty_value_is_not_missing(self):
        parsed = parse_attributes('gene_name "";', keys=["gene_name"])
        self.assertEqual(parsed["gene_name"], "")

    def test_escaped_quote_kept_verbatim(self):
        parsed = parse_attributes(r'note "say \"hi\""; gene_id "G1";')
        self.assertEqual(parsed["note"], r"say \"hi\"")
        self.assertEqual(parsed["gene_id"], "G1")

    def test_malformed_entries_skipped(self):
        parsed = parse_attributes('gene_id "G1"; level 2; broken; gene_name "ABC";')
        self.assertEqual(parsed, {"gene_id": "G1", "gene_name": "ABC"})

    def test_key_glued_to_quote_is_malformed(self):
        self.assertEqual(parse_attributes('gene_id"G1"; gene_name "ABC";'), {"gene_name": "ABC"})

    def test_malformed_tail_without_separator(self):
        self.assertEqual(parse_attributes('gene_id "G1"; dangling'), {"gene_id": "G1"})

    def test_strict_mode_warns_for_each_malformed_entry(self):
        with self.assertWarns(AttributeParseWarning) as caught:
            parse_attributes('gene_id "G1"; level 2;', strict=True)
        self.assertIn("level 2", str(caught.warning))

        with warnings.catch_warnings(record=True) as records:
            warnings.simplefilter("always")
            parse_attributes('a; b; gene_id "G1";', strict=True)
        self.assertEqual(len([w for w in records if issubclass(w.category, AttributeParseWarning)]), 2)

    def test_default_mode_is_silent(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            parse_attributes('gene_id "G1"; level 2;')

    def test_allow_unquoted(self):
        parsed = parse_attributes('gene_id "G1"; level 2; exon_number 3;', allow_unquoted=True)
        self.assertEqual(parsed, {"gene_id": "G1", "level": "2", "exon_number": "3"})

    def test_non_text_raises(self):
        with self.assertRaises(TypeError):
            parse_attributes(None)
        with self.assertRaises(TypeError):
            parse_attributes(b'gene_id "G1";')


class TestFormatAttributes(unittest.TestCase):

    def test_reserialize_matches_normalized_input(self):
        text = 'gene_id  "ENSG00000223972.5";transcript_id "ENST00000456328.2" ;  tag "basic";'
        normalized = 'gene_id "ENSG00000223972.5"; transcript_id "ENST00000456328.2"; tag "basic";'
        self.assertEqual(format_attributes(parse_attributes(text)), normalized)

    def test_gencode_line_survives_reserialization(self):
        self.assertEqual(format_attributes(parse_attributes(GENCODE_TRANSCRIPT)), GENCODE_TRANSCRIPT)

    def test_missing_values_are_dropped(self):
        self.assertEqual(format_attributes({"gene_id": "G1", "level": MISSING}), 'gene_id "G1";')

    def test_empty_mapping(self):
        self.assertEqual(format_attributes({}), "")


if __name__ == "__main__":
    unittest.main()
