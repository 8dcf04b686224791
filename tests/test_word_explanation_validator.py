"""
Unit tests for word normalization and the word explanation validator.

Tests the coverage rules including:
- Normalization and tokenization (punctuation, casing, repeated words)
- Important-word filtering per language
- Missing and extra word detection
- Coverage percentage and validity
"""

import sys
import os
import pytest
from types import SimpleNamespace

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.important_words import ImportantWordFilter
from services.text_normalization import normalize_word, tokenize, unique_tokens
from services.word_explanation_validator import validate_word_explanations

KAFFEE_SENTENCE = "Wie würden Sie einen Kaffee bestellen?"
KAFFEE_WORDS = ['wie', 'würden', 'sie', 'einen', 'kaffee', 'bestellen']


def explanations_for(words):
    return [{'word': word, 'translation': 't', 'explanation': 'e'} for word in words]


class TestNormalization:
    """Tests for normalize_word() and tokenize()"""

    @pytest.mark.parametrize('word, expected', [
        ('Kaffee', 'kaffee'),
        ('bestellen?', 'bestellen'),
        ('  Hallo!  ', 'hallo'),
        ('(ja),', 'ja'),
        ('¿Qué', '¿qué'),
        ('...', ''),
        ('', ''),
        (None, ''),
    ])
    def test_normalize_word(self, word, expected):
        assert normalize_word(word) == expected

    @pytest.mark.parametrize('word', [
        'Kaffee', 'bestellen?', '  (Wie), ', 'ÉCOLE!', "geht's", '?!', 'a.b.c', 'Straße;'
    ])
    def test_normalize_is_idempotent(self, word):
        once = normalize_word(word)
        assert normalize_word(once) == once

    def test_tokenize_keeps_original_forms_and_drops_empty_tokens(self):
        tokens = tokenize("Wie geht es dir ?")

        assert [t.original for t in tokens] == ['Wie', 'geht', 'es', 'dir']
        assert [t.normalized for t in tokens] == ['wie', 'geht', 'es', 'dir']

    def test_tokenize_empty_sentence(self):
        assert tokenize('') == []
        assert tokenize(None) == []

    def test_unique_tokens_keeps_first_occurrence(self):
        tokens = unique_tokens("Der Hund sieht der Katze zu. der!")

        normalized = [t.normalized for t in tokens]
        assert normalized == ['der', 'hund', 'sieht', 'katze', 'zu']
        assert tokens[0].original == 'Der'


class TestValidateWordExplanations:
    """Tests for validate_word_explanations()"""

    def test_no_explanations_reports_every_important_word_missing(self):
        report = validate_word_explanations(KAFFEE_SENTENCE, [], 'de')

        assert report.total_important_words == 6
        assert report.missing_words == ['Wie', 'würden', 'Sie', 'einen', 'Kaffee', 'bestellen?']
        assert report.extra_words == []
        assert report.coverage_percent == 0
        assert report.is_valid is False

    def test_complete_explanations_are_valid(self):
        report = validate_word_explanations(KAFFEE_SENTENCE, explanations_for(KAFFEE_WORDS), 'de')

        assert report.missing_words == []
        assert report.extra_words == []
        assert report.coverage_percent == 100
        assert report.is_valid is True

    def test_extra_word_makes_full_coverage_invalid(self):
        explanations = explanations_for(KAFFEE_WORDS + ['foo'])

        report = validate_word_explanations(KAFFEE_SENTENCE, explanations, 'de')

        assert report.coverage_percent == 100
        assert report.extra_words == ['foo']
        assert report.is_valid is False

    def test_extra_word_detected_regardless_of_coverage(self):
        report = validate_word_explanations(KAFFEE_SENTENCE, explanations_for(['kaffee', 'tee']), 'de')

        assert report.extra_words == ['tee']
        assert 'Kaffee' not in report.missing_words
        assert report.is_valid is False

    def test_explanation_for_unimportant_short_word_is_extra(self):
        # 'ab' is too short and not on the German allow-list
        report = validate_word_explanations("Der Zug fährt ab", explanations_for(['der', 'zug', 'fährt', 'ab']), 'de')

        assert report.total_important_words == 3
        assert report.extra_words == ['ab']

    def test_explanation_words_are_normalized_before_matching(self):
        explanations = explanations_for(['Wie', 'WÜRDEN', 'sie?', 'einen,', ' Kaffee ', 'bestellen!'])

        report = validate_word_explanations(KAFFEE_SENTENCE, explanations, 'de')

        assert report.is_valid is True

    def test_repeated_word_counts_once(self):
        sentence = "Der Hund und der Hund"

        report = validate_word_explanations(sentence, [], 'de')

        assert report.total_important_words == 3
        assert report.missing_words == ['Der', 'Hund', 'und']

    def test_partial_coverage_is_rounded(self):
        # 2 of 3 important words explained
        report = validate_word_explanations("Ich trinke Kaffee", explanations_for(['ich', 'trinke']), 'de')

        assert report.coverage_percent == 66.67
        assert report.missing_words == ['Kaffee']

    def test_coverage_never_decreases_when_adding_missing_words(self):
        explained = []
        previous = validate_word_explanations(KAFFEE_SENTENCE, [], 'de')

        for word in KAFFEE_WORDS:
            explained.append(word)
            report = validate_word_explanations(KAFFEE_SENTENCE, explanations_for(explained), 'de')

            assert report.coverage_percent >= previous.coverage_percent
            assert len(report.missing_words) <= len(previous.missing_words)
            previous = report

        assert previous.is_valid is True

    @pytest.mark.parametrize('words, expected_valid', [
        (KAFFEE_WORDS, True),
        (KAFFEE_WORDS[:-1], False),
        (KAFFEE_WORDS + ['foo'], False),
        (KAFFEE_WORDS[:-1] + ['foo'], False),
    ])
    def test_valid_iff_full_coverage_and_no_extras(self, words, expected_valid):
        report = validate_word_explanations(KAFFEE_SENTENCE, explanations_for(words), 'de')

        assert report.is_valid == (report.coverage_percent == 100 and not report.extra_words)
        assert report.is_valid is expected_valid

    def test_sentence_without_important_words(self):
        report = validate_word_explanations("Ja, ok.", [], 'de')

        assert report.total_important_words == 0
        assert report.coverage_percent == 100
        assert report.is_valid is True

    def test_sentence_without_important_words_but_with_extras(self):
        report = validate_word_explanations("Ja, ok.", explanations_for(['foo']), 'de')

        assert report.coverage_percent == 100
        assert report.extra_words == ['foo']
        assert report.is_valid is False

    def test_accepts_objects_with_word_attribute(self):
        explanations = [SimpleNamespace(word=word) for word in KAFFEE_WORDS]

        report = validate_word_explanations(KAFFEE_SENTENCE, explanations, 'de')

        assert report.is_valid is True
        assert report.explained_count == 6

    def test_explained_count_includes_extras(self):
        report = validate_word_explanations(KAFFEE_SENTENCE, explanations_for(['kaffee', 'foo']), 'de')

        assert report.explained_count == 2

    def test_language_allow_list_selects_short_words(self):
        english = validate_word_explanations("It is a cat", [], 'en')
        unknown = validate_word_explanations("It is a cat", [], 'nl')

        assert english.total_important_words == 4
        assert unknown.total_important_words == 1
        assert unknown.missing_words == ['cat']

    def test_regional_code_falls_back_to_base_language(self):
        report = validate_word_explanations(KAFFEE_SENTENCE, [], 'de-AT')

        assert report.total_important_words == 6

    def test_custom_word_filter(self):
        word_filter = ImportantWordFilter({'nl': ['ik', 'de']})

        report = validate_word_explanations("Ik zie de kat", [], 'nl', word_filter=word_filter)

        assert report.missing_words == ['Ik', 'zie', 'de', 'kat']

    def test_report_carries_phrase_metadata(self):
        report = validate_word_explanations(KAFFEE_SENTENCE, [], 'de', phrase_id=42)

        assert report.phrase_id == 42
        assert report.sentence == KAFFEE_SENTENCE
        assert report.language_code == 'de'

    def test_same_input_same_report(self):
        explanations = explanations_for(['kaffee', 'foo'])

        first = validate_word_explanations(KAFFEE_SENTENCE, explanations, 'de')
        second = validate_word_explanations(KAFFEE_SENTENCE, explanations, 'de')

        assert first == second
