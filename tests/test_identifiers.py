"""
Tests for account number generation
"""

import random
import threading

import pytest

from bank_ledger.identifiers import AccountIdGenerator, DEFAULT_ACCOUNT_NUMBER_LENGTH


class TestAccountIdGenerator:
    """Test account number issuance"""

    def setup_method(self):
        self.generator = AccountIdGenerator(rng=random.Random(7))

    def test_default_length_digits(self):
        """Test that numbers are fixed-length digit strings"""
        number = self.generator.generate()
        assert len(number) == DEFAULT_ACCOUNT_NUMBER_LENGTH
        assert number.isdigit()

    def test_custom_length(self):
        """Test explicit length argument"""
        assert len(self.generator.generate(4)) == 4

    def test_leading_zeros_preserved(self):
        """Test that short numbers keep their leading zeros"""
        numbers = {self.generator.generate(2) for _ in range(60)}
        assert all(len(n) == 2 for n in numbers)

    def test_unique_numbers(self):
        """Test that issued numbers never repeat"""
        numbers = [self.generator.generate(3) for _ in range(500)]
        assert len(set(numbers)) == 500
        assert self.generator.issued_count == 500

    def test_exhausts_small_space(self):
        """Test that the whole 1-digit space can be issued, then errors"""
        numbers = {self.generator.generate(1) for _ in range(10)}
        assert numbers == {str(d) for d in range(10)}
        with pytest.raises(ValueError):
            self.generator.generate(1)

    def test_reserved_numbers_not_issued(self):
        """Test that reserved numbers are skipped"""
        self.generator.reserve_all(str(d) for d in range(9))
        assert self.generator.generate(1) == "9"
        assert self.generator.is_issued("3")

    def test_reserve_single(self):
        """Test reserving one number"""
        self.generator.reserve("123456789012")
        assert self.generator.is_issued("123456789012")
        assert not self.generator.is_issued("000000000000")

    def test_invalid_length(self):
        """Test that non-positive lengths are rejected"""
        with pytest.raises(ValueError):
            self.generator.generate(0)
        with pytest.raises(ValueError):
            AccountIdGenerator(default_length=0)

    def test_concurrent_generation_unique(self):
        """Test that concurrent callers never receive the same number"""
        generator = AccountIdGenerator()
        results = []
        results_lock = threading.Lock()

        def worker():
            issued = [generator.generate(4) for _ in range(200)]
            with results_lock:
                results.extend(issued)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 1600
        assert len(set(results)) == 1600
