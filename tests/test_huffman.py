import heapq

import pytest

from bitops import BitReader
from errors import CodeOverflowError
from huffman import (
    StaticHuffman,
    build_frequency_table,
    build_tree,
    code_to_str,
    format_dictionary,
    format_frequency_table,
    generate_codes,
    weighted_length,
)


def optimal_cost(frequencies):
    """Minimum total code length, computed as the sum of all merge weights."""
    weights = sorted(f for f in frequencies.values() if f > 0)
    if len(weights) == 1:
        return weights[0]
    heapq.heapify(weights)
    cost = 0
    while len(weights) > 1:
        merged = heapq.heappop(weights) + heapq.heappop(weights)
        cost += merged
        heapq.heappush(weights, merged)
    return cost


def as_strings(codes):
    return {s: code_to_str(c, n) for s, (c, n) in codes.items()}


def test_frequency_table_counts_and_orders_symbols():
    assert build_frequency_table(b"") == {}
    freqs = build_frequency_table(b"banana")
    assert freqs == {ord("a"): 3, ord("b"): 1, ord("n"): 2}
    assert list(freqs) == sorted(freqs)


def test_build_tree_rejects_empty_table():
    with pytest.raises(ValueError):
        build_tree({})


def test_single_symbol_gets_one_bit_code():
    root = build_tree({65: 10})
    assert root.is_leaf and root.freq == 10
    assert generate_codes(root) == {65: (0, 1)}


def test_aaab_merges_two_leaves_directly():
    freqs = build_frequency_table(b"aaab")
    root = build_tree(freqs)
    assert root.freq == 4
    assert root.left.symbol == ord("b") and root.right.symbol == ord("a")
    codes = as_strings(generate_codes(root))
    assert codes == {ord("a"): "1", ord("b"): "0"}
    assert weighted_length(freqs, generate_codes(root)) == 4


def test_equal_weights_pop_in_symbol_then_creation_order():
    freqs = {ord("d"): 1, ord("c"): 1, ord("b"): 1, ord("a"): 1}
    codes = as_strings(generate_codes(build_tree(freqs)))
    assert codes == {
        ord("a"): "00",
        ord("b"): "01",
        ord("c"): "10",
        ord("d"): "11",
    }


def test_merged_node_loses_tie_against_older_leaf():
    freqs = {ord("A"): 5, ord("B"): 2, ord("C"): 2, ord("D"): 1}
    codes = as_strings(generate_codes(build_tree(freqs)))
    assert codes == {
        ord("A"): "0",
        ord("B"): "111",
        ord("C"): "10",
        ord("D"): "110",
    }


def test_codes_are_prefix_free(telemetry_text):
    codes = as_strings(generate_codes(build_tree(build_frequency_table(telemetry_text))))
    values = list(codes.values())
    for i, a in enumerate(values):
        for j, b in enumerate(values):
            if i != j:
                assert not b.startswith(a)


@pytest.mark.parametrize(
    "freqs",
    [
        {1: 1, 2: 1},
        {0: 7, 1: 3, 2: 3, 3: 1, 4: 1},
        {i: i + 1 for i in range(40)},
        {i: 2 ** i for i in range(12)},
        {200: 9},
    ],
)
def test_weighted_length_is_optimal(freqs):
    codes = generate_codes(build_tree(freqs))
    assert set(codes) == set(freqs)
    assert weighted_length(freqs, codes) == optimal_cost(freqs)


def test_tree_is_deterministic(telemetry_text):
    freqs = build_frequency_table(telemetry_text)
    assert generate_codes(build_tree(freqs)) == generate_codes(build_tree(dict(reversed(list(freqs.items())))))


def test_dictionary_save_and_load_rebuild_same_codes():
    freqs = {ord("A"): 5, ord("B"): 7, ord("C"): 2, ord("D"): 3}
    h1 = StaticHuffman()
    h1.build_from_frequencies(freqs)
    blob = h1.save_dictionary()
    assert len(blob) == 3 * len(freqs)

    h2 = StaticHuffman()
    reader = BitReader(blob)
    h2.load_dictionary(reader, len(freqs))
    assert reader.pos == len(blob)
    assert h2.codes == h1.codes
    assert h2.frequencies == {}


def test_long_codes_span_several_bytes():
    fib = [1, 1]
    while len(fib) < 20:
        fib.append(fib[-1] + fib[-2])
    freqs = {i: f for i, f in enumerate(fib)}
    h = StaticHuffman()
    h.build_from_frequencies(freqs)
    assert max(n for _, n in h.codes.values()) == 19

    loaded = StaticHuffman()
    loaded.load_dictionary(BitReader(h.save_dictionary()), len(freqs))
    assert loaded.codes == h.codes


def test_encode_unknown_symbol_raises():
    h = StaticHuffman()
    h.build_from_frequencies({65: 1})
    assert h.encode_symbol(65) == (0, 1)
    with pytest.raises(ValueError):
        h.encode_symbol(66)


def test_code_longer_than_255_bits_overflows():
    h = StaticHuffman()
    h.codes = {65: (0, 256)}
    with pytest.raises(CodeOverflowError):
        h.save_dictionary()
    with pytest.raises(OverflowError):
        h.save_dictionary()


def test_decode_symbol_walks_tree():
    h = StaticHuffman()
    h.build_from_frequencies({ord("a"): 3, ord("b"): 1})
    loaded = StaticHuffman()
    loaded.load_dictionary(BitReader(h.save_dictionary()), 2)
    reader = BitReader(bytes([0b10000000]))
    assert loaded.decode_symbol(reader) == ord("a")
    assert loaded.decode_symbol(reader) == ord("b")


def test_table_dumps():
    freqs = {ord("a"): 3, 10: 1}
    codes = generate_codes(build_tree(freqs))
    assert format_frequency_table(freqs) == [
        "Frequency Table:",
        "10 ('\\x0a') : 1",
        "97 ('a') : 3",
    ]
    assert format_dictionary(codes) == [
        "Huffman Dictionary:",
        "10 ('\\x0a') : 0",
        "97 ('a') : 1",
    ]
