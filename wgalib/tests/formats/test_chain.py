import pytest
from wgalib.errors import InvalidAlignment, InvalidNumber, MissingField, UnexpectedFieldCount, UnknownStrandSymbol
from wgalib.formats.chain import ChainBlock, ChainRecord, decode, encode, parse_header
from wgalib.models.strand import Strand

CHAIN = """\
chain 1000 t1 500 + 100 122 q1 200 - 20 44 7
10\t2\t1
5\t0\t3
5

"""

def test_decode_chain():
    (c,) = list(decode(CHAIN))
    assert isinstance(c, ChainRecord)
    assert c.chain_id == 7 and c.score == 1000
    assert c.blocks == [ChainBlock(10, 2, 1), ChainBlock(5, 0, 3), ChainBlock(5)]
    assert c.query_strand is Strand.NEGATIVE
    # header values stay strand-relative, AlignRecord ones are forward
    assert (c.q_start, c.q_end) == (20, 44)
    assert (c.query_start, c.query_end) == (156, 180)
    assert c.target_align_size == 22

def test_chain_cigar_and_stat():
    (c,) = list(decode(CHAIN))
    assert c.cigar_string() == "10M2D1I5M3I5M"
    st = c.stat()
    assert (st.match_count, st.mismatch_count, st.ins_count, st.del_count) == (20, 0, 4, 2)

def test_encode_chain_text():
    (c,) = list(decode(CHAIN))
    assert encode([c]) == CHAIN

def test_header_errors():
    with pytest.raises(UnexpectedFieldCount):
        parse_header("chain 1 t 5 + 0 5 q 5 + 0 5")
    with pytest.raises(InvalidNumber):
        parse_header("chain 1 t five + 0 5 q 5 + 0 5 1")
    with pytest.raises(UnknownStrandSymbol):
        parse_header("chain 1 t 5 + 0 5 q 5 ? 0 5 1")

def test_span_mismatch_is_invalid():
    text = CHAIN.replace("5\n\n", "6\n\n")
    with pytest.raises(InvalidAlignment):
        list(decode(text))

def test_bad_chain_yielded_and_next_one_read():
    good = CHAIN.replace(" 7\n", " 8\n")
    text = CHAIN.replace("5\t0\t3", "5\tx\t3") + good
    items = list(decode(text, errors="yield"))
    assert isinstance(items[0], InvalidNumber)
    assert items[1].chain_id == 8
    assert [c.chain_id for c in decode(text, errors="skip")] == [8]

def test_unterminated_chain():
    with pytest.raises(MissingField):
        list(decode("chain 1 t 50 + 0 10 q 50 + 0 10 1\n10\t0\t0\n"))

def test_data_before_header():
    with pytest.raises(MissingField):
        list(decode("10\n"))

def test_header_line_formats_score():
    c = ChainRecord(
        score=12.5, target_name="t", target_size=10, target_start=0, target_end=4,
        query_name="q", query_size=10, query_strand=Strand.POSITIVE, q_start=0, q_end=4,
        chain_id=3, blocks=[ChainBlock(4)],
    )
    assert c.header_line() == "chain 12.5 t 10 + 0 4 q 10 + 0 4 3"
