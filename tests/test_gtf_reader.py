"""
Unit tests for GTF line parsing and file reading.
"""

import gzip
import shutil
import tempfile
import unittest
from pathlib import Path

from gtfcounter.io.gtf import (
    MISSING,
    GTFFormatError,
    GTFRecord,
    format_line,
    iter_gtf,
    parse_line,
    read_gtf,
    write_gtf,
)

SAMPLE_GTF = Path(__file__).parent / "data" / "gencode_sample.gtf"

GENE_LINE = (
    "chr1\tHAVANA\tgene\t11869\t14409\t.\t+\t.\t"
    'gene_id "ENSG00000223972.5"; gene_type "transcribed_unprocessed_pseudogene"; gene_name "DDX11L1";'
)


class TestParseLine(unittest.TestCase):

    def test_positional_fields(self):
        record = parse_line(GENE_LINE + "\n")
        self.assertEqual(record.chrom, "chr1")
        self.assertEqual(record.source, "HAVANA")
        self.assertEqual(record.feature_type, "gene")
        self.assertEqual((record.start, record.end), (11869, 14409))
        self.assertIsNone(record.score)
        self.assertEqual(record.strand, "+")
        self.assertIsNone(record.phase)
        self.assertEqual(record.length, 2541)
        self.assertEqual(record.get("gene_name"), "DDX11L1")
        self.assertIs(record.get("transcript_id"), MISSING)

    def test_keys_restrict_attributes(self):
        record = parse_line(GENE_LINE, keys=["gene_id", "level"])
        self.assertEqual(record.attributes, {"gene_id": "ENSG00000223972.5", "level": MISSING})

    def test_phase_and_score_kept(self):
        record = parse_line('chr2\tHAVANA\tCDS\t10\t20\t0.5\t-\t2\tgene_id "G";')
        self.assertEqual(record.score, "0.5")
        self.assertEqual(record.phase, "2")

    def test_single_base_feature(self):
        self.assertEqual(parse_line('chr1\tX\texon\t5\t5\t.\t+\t.\tgene_id "G";').length, 1)

    def test_wrong_field_count(self):
        with self.assertRaises(GTFFormatError):
            parse_line("chr1\tHAVANA\tgene\t1\t10")

    def test_end_before_start(self):
        with self.assertRaises(GTFFormatError) as ctx:
            parse_line('chr1\tX\tgene\t10\t9\t.\t+\t.\tgene_id "G";')
        self.assertIn("before start", str(ctx.exception))

    def test_non_integer_coordinates(self):
        with self.assertRaises(GTFFormatError):
            parse_line('chr1\tX\tgene\tten\t20\t.\t+\t.\tgene_id "G";')

    def test_invalid_strand(self):
        with self.assertRaises(GTFFormatError):
            parse_line('chr1\tX\tgene\t1\t20\t.\t*\t.\tgene_id "G";')

    def test_format_line_inverts_parse(self):
        line = 'chr2\tHAVANA\tCDS\t45000\t45999\t.\t-\t0\tgene_id "G1"; transcript_id "T1";'
        self.assertEqual(format_line(parse_line(line)), line)

    def test_format_error_message_includes_location(self):
        err = GTFFormatError("bad", filename="a.gtf", line_number=7)
        self.assertEqual(str(err), "a.gtf:7: bad")
        self.assertIsInstance(err, ValueError)


class TestReadGtf(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_sample_skips_comments_and_malformed_lines(self):
        with self.assertLogs("gtfcounter", level="WARNING") as logs:
            records = read_gtf(SAMPLE_GTF)
        self.assertEqual(len(records), 12)
        self.assertTrue(all(isinstance(record, GTFRecord) for record in records))
        self.assertTrue(any("15" in message for message in logs.output))

    def test_fail_policy_raises_with_location(self):
        with self.assertRaises(GTFFormatError) as ctx:
            read_gtf(SAMPLE_GTF, on_malformed="fail")
        self.assertEqual(ctx.exception.line_number, 15)
        self.assertTrue(ctx.exception.filename.endswith("gencode_sample.gtf"))

    def test_unknown_policy(self):
        with self.assertRaises(ValueError):
            list(iter_gtf(SAMPLE_GTF, on_malformed="ignore"))

    def test_keys_and_unquoted_values(self):
        records = read_gtf(SAMPLE_GTF, keys=["gene_id", "level"], allow_unquoted=True)
        self.assertEqual(records[0].attributes, {"gene_id": "ENSG00000290825.1", "level": "2"})
        quoted_only = read_gtf(SAMPLE_GTF, keys=["level"])
        self.assertIs(quoted_only[0].get("level"), MISSING)

    def test_gzip_input(self):
        gz_path = Path(self.tmpdir) / "sample.gtf.gz"
        with SAMPLE_GTF.open("rb") as src, gzip.open(gz_path, "wb") as dst:
            shutil.copyfileobj(src, dst)
        self.assertEqual(len(read_gtf(gz_path)), 12)

    def test_iter_is_lazy(self):
        iterator = iter_gtf(SAMPLE_GTF)
        first = next(iterator)
        self.assertEqual(first.feature_type, "gene")
        iterator.close()

    def test_write_then_read(self):
        records = read_gtf(SAMPLE_GTF)
        out_path = Path(self.tmpdir) / "nested" / "copy.gtf"
        write_gtf(records, out_path)
        self.assertEqual(read_gtf(out_path), records)


if __name__ == "__main__":
    unittest.main()
