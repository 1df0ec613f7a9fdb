"""Unit tests for batch encode/decode and the parallel driver."""

import random
import threading
import time

import pytest

import ranktok as rtok
from ranktok.parallel import ParallelMode, encode_batch, run_batch


@pytest.fixture
def texts():
    rng = random.Random(1234)
    words = ["hello", "world", "the", "other", "café", "日本", "42", "!", "\n"]
    return [" ".join(rng.choice(words) for _ in range(rng.randint(0, 40))) for _ in range(60)]


# Batch encode/decode
# ---------------------------------------------------------------------------


def test_batch_matches_single_text_results(encoding, texts):
    encoded = encoding.encode_batch(texts, num_workers=4, parallel_mode="batch")
    assert encoded == [encoding.encode(text) for text in texts]
    decoded = encoding.decode_batch(encoded, "strict", num_workers=4, parallel_mode="batch")
    assert decoded == texts


def test_sequential_and_parallel_batches_agree(encoding, texts):
    serial = encoding.encode_batch(texts, parallel_mode="off")
    parallel = encoding.encode_batch(texts, num_workers=8, parallel_mode="batch")
    assert serial == parallel


def test_encode_ordinary_batch(encoding, texts):
    encoded = encoding.encode_ordinary_batch(texts, num_workers=3, parallel_mode="batch")
    assert encoded == [encoding.encode_ordinary(text) for text in texts]


def test_batch_with_special_tokens(encoding):
    texts = ["hello<CTRL>", "world", "<|endoftext|>"]
    encoded = encoding.encode_batch(
        texts, rtok.ALLOW_ALL, num_workers=2, parallel_mode=ParallelMode.BATCH
    )
    assert encoded == [[259, 1001], encoding.encode_ordinary("world"), [1000]]


def test_batch_fails_as_a_whole(encoding):
    texts = ["fine", "also fine", "<CTRL> smuggled"]
    with pytest.raises(rtok.SpecialTokenViolation):
        encoding.encode_batch(texts, rtok.ALLOW_NONE, num_workers=2, parallel_mode="batch")


def test_decode_batch_fails_on_unknown_rank(encoding):
    with pytest.raises(rtok.DecodeError):
        encoding.decode_batch([[259], [999999]], num_workers=2, parallel_mode="batch")


def test_empty_batch(encoding):
    assert encoding.encode_batch([]) == []
    assert encoding.decode_batch([]) == []


def test_module_level_encode_batch(encoding):
    assert encode_batch(encoding, ["hello", "the"]) == [[259], [266]]


# run_batch
# ---------------------------------------------------------------------------


def test_results_follow_input_order():
    def slow_square(x: int) -> int:
        # later items finish first
        time.sleep(0.001 * (20 - x))
        return x * x

    items = list(range(20))
    result = run_batch(slow_square, items, num_workers=4, parallel_mode="batch")
    assert result == [x * x for x in items]


def test_auto_runs_small_inputs_on_caller_thread():
    caller = threading.get_ident()
    seen = run_batch(
        lambda _: threading.get_ident(), ["a", "b", "c"], num_workers=4, parallel_mode="auto"
    )
    assert set(seen) == {caller}


def test_auto_batches_large_inputs():
    caller = threading.get_ident()
    items = ["x" * 60_000] * 8
    seen = run_batch(lambda _: threading.get_ident(), items, num_workers=4, parallel_mode="auto")
    assert caller not in seen


def test_zero_workers_means_one():
    caller = threading.get_ident()
    seen = run_batch(
        lambda _: threading.get_ident(), [1, 2, 3], num_workers=0, parallel_mode="batch"
    )
    assert set(seen) == {caller}


def test_parallel_mode_names():
    assert ParallelMode.get("BATCH") is ParallelMode.BATCH
    assert rtok.list_parallel_modes() == ["auto", "batch", "off"]
    with pytest.raises(rtok.PolicyError):
        ParallelMode.get("chunk")
