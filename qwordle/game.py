#!/usr/bin/env python
"""
QWordle: a two-word variant of Wordle for the terminal.

Two target words are hidden. They share no letters with each other, and
neither contains a repeated letter. You win by guessing either of them. Each
guess is scored letter by letter against both targets at once:

- a letter in the right place in either target is "correct";
- a letter elsewhere in either target is "present";
- anything else is "absent".

You are not told which target each letter came from. Instead, after each
guess you are told whether the letters you have found so far all belong to the
same word, or are split across both words.

There are two word lists. The hidden words are drawn from a short list of
common words; guesses may also come from a longer list of less common ones.

Play with (or use ``python -m qwordle`` in place of ``qwordle``):

.. code-block:: bash

    qwordle play
    qwordle play --seed 42 --max_guesses 8
    qwordle --wordlist_filename my_answers.txt \\
        --guesslist_filename my_guesses.txt play

Build a word list from the system dictionary with:

.. code-block:: bash

    qwordle --wordlist_filename my_words.txt make_wordlist

Run self-tests with:

.. code-block:: bash

    pip install pytest
    pytest qwordle/game.py

"""  # noqa

# =============================================================================
# Imports
# =============================================================================

import argparse
from contextlib import contextmanager
from enum import Enum
from importlib import resources
import logging
import os
import re
import sys
import tempfile
from timeit import default_timer as timer
from typing import (
    AbstractSet, Callable, Collection, Dict, FrozenSet, Generator, Iterable,
    List, Mapping, Optional, Sequence, Set, Tuple
)
import unittest
from unittest import mock

from colors import color  # pip install ansicolors
from cardinal_pythonlib.logs import main_only_quicksetup_rootlogger
import numpy as np

rootlog = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Paths. The bundled lists live in our "data" package directory.
DEFAULT_OS_DICT = "/usr/share/dict/words"
BUNDLED_ANSWERS = "five_letter_words.txt"
BUNDLED_GUESSES = "valid_guesses.txt"

# Defining the game
WORDLEN = 5
N_GUESSES = 6
ALPHABET = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZ")
MAX_PAIR_ATTEMPTS = 100

# Regular expressions to read words from files
WORD_REGEX = re.compile(rf"^[A-Z]{{{WORDLEN}}}$", re.IGNORECASE)

# Plain-text feedback codes, for logs and colourless output
CHAR_ABSENT = "_"
CHAR_PRESENT_WRONG_LOC = "-"
CHAR_CORRECT = "="

# Colours and styles for displaying guesses, via the ansicolors package
COLOUR_ABSENT = dict(fg="white", bg="black", style="bold")
COLOUR_PRESENT_WRONG_LOCATION = dict(fg="white", bg="yellow", style="bold")
COLOUR_PRESENT_RIGHT_LOCATION = dict(fg="white", bg="green", style="bold")

# Exit codes
EXIT_FAILURE = 1


# =============================================================================
# Exceptions
# =============================================================================

class QWordleError(Exception):
    """
    Base class for our errors.
    """
    pass


class GuessError(QWordleError, ValueError):
    """
    A guess was rejected. The turn is not used up. The message is meant for
    the player.
    """
    def __init__(self, message: str, guess: str) -> None:
        super().__init__(message)
        self.guess = guess


class LengthMismatch(GuessError):
    """
    The guess is not the same length as the targets.
    """
    pass


class InvalidLetter(GuessError):
    """
    The guess contains something other than the letters A-Z.
    """
    pass


class UnknownWord(GuessError):
    """
    The guess is well formed but is not in the word list.
    """
    pass


class NoValidTargetPair(QWordleError):
    """
    We couldn't find two words to hide. Fatal to starting a game.
    """
    pass


class GameOver(QWordleError):
    """
    A guess was made after the game had finished.
    """
    pass


# =============================================================================
# Enums
# =============================================================================

class CharFeedback(Enum):
    """
    Possible types of feedback about each character.
    """
    ABSENT = 1
    PRESENT_WRONG_LOCATION = 2
    PRESENT_RIGHT_LOCATION = 3

    @property
    def plain_str(self) -> str:
        """
        Plain string representation.
        """
        if self == CharFeedback.ABSENT:
            return CHAR_ABSENT
        elif self == CharFeedback.PRESENT_WRONG_LOCATION:
            return CHAR_PRESENT_WRONG_LOC
        elif self == CharFeedback.PRESENT_RIGHT_LOCATION:
            return CHAR_CORRECT
        else:
            raise AssertionError("bug")

    @property
    def colour_params(self) -> Dict[str, str]:
        """
        Keyword arguments to :func:`colors.color` for a letter with this
        feedback.
        """
        return {
            CharFeedback.ABSENT: COLOUR_ABSENT,
            CharFeedback.PRESENT_WRONG_LOCATION: COLOUR_PRESENT_WRONG_LOCATION,
            CharFeedback.PRESENT_RIGHT_LOCATION: COLOUR_PRESENT_RIGHT_LOCATION,
        }[self]


class Target(Enum):
    """
    Which of the two hidden words. Iteration order is also the order in which
    the targets are consulted when scoring a letter.
    """
    PRIMARY = 1
    SECONDARY = 2


class SplitIndicator(Enum):
    """
    Do the letters found so far come from one hidden word, or both?
    """
    UNDETERMINED = 1
    ALL_SAME_WORD = 2
    SPLIT_ACROSS_WORDS = 3

    @property
    def plain_str(self) -> str:
        """
        Label shown to the player after a guess.
        """
        if self == SplitIndicator.UNDETERMINED:
            return "(undetermined)"
        elif self == SplitIndicator.ALL_SAME_WORD:
            return "(same word)"
        elif self == SplitIndicator.SPLIT_ACROSS_WORDS:
            return "(both words)"
        else:
            raise AssertionError("bug")


class GameStatus(Enum):
    IN_PROGRESS = 1
    WON = 2
    LOST = 3


# =============================================================================
# Helper functions
# =============================================================================

# -----------------------------------------------------------------------------
# Letters
# -----------------------------------------------------------------------------

def has_unique_letters(word: str) -> bool:
    """
    Does the word use each of its letters only once?
    """
    return len(set(word)) == len(word)


def letters_disjoint(word1: str, word2: str) -> bool:
    """
    Do the two words have no letters in common?
    """
    return not set(word1).intersection(word2)


def valid_target_pair(word1: str, word2: str) -> bool:
    """
    Could these two words be hidden together? They must be the same length,
    have no repeated letters, and share no letters.
    """
    return (
        len(word1) == len(word2)
        and has_unique_letters(word1)
        and has_unique_letters(word2)
        and letters_disjoint(word1, word2)
    )


# -----------------------------------------------------------------------------
# Timing
# -----------------------------------------------------------------------------

@contextmanager
def log_duration(what: str) -> Generator[None, None, None]:
    """
    Logs (at debug level) how long the enclosed block took.
    """
    start = timer()
    try:
        yield
    finally:
        rootlog.debug(f"{what}: {1000 * (timer() - start):.1f} ms")


# =============================================================================
# Word lists
# =============================================================================

def make_wordlist(from_filename: str,
                  to_filename: str) -> None:
    """
    Extracts the five-letter words from a dictionary file (one word per line)
    and writes them out in upper case, first occurrence only, in dictionary
    order. Words with repeated letters are kept: they can't be hidden, but
    they are fine as guesses.
    """
    rootlog.info(f"Making word list {to_filename} from {from_filename}")
    with open(from_filename, "rt") as f:
        lines = f.readlines()
    words = dict.fromkeys(
        line.strip().upper() for line in lines
        if WORD_REGEX.match(line.strip())
    )  # an ordered set
    with open(to_filename, "wt") as t:
        for word in words:
            t.write(word + "\n")
    rootlog.info(f"Kept {len(words)} of {len(lines)} lines")


def words_array(words: Iterable[str]) -> np.ndarray:
    """
    Sorted, de-duplicated words as a fixed-width Numpy string array.
    """
    return np.array(sorted(set(words)), dtype=f"U{WORDLEN}")


def parse_words(lines: Iterable[str], source: str,
                max_n: int = None) -> np.ndarray:
    """
    Turns the lines of a word list into an array of upper-case words. Blank
    lines are ignored; other lines that aren't words of the right length are
    skipped, with a warning.
    """
    words = []  # type: List[str]
    n_skipped = 0
    for line in lines:
        word = line.strip()
        if not word:
            continue
        if not WORD_REGEX.match(word):
            n_skipped += 1
            continue
        words.append(word.upper())
        if max_n is not None and len(words) >= max_n:
            rootlog.warning(f"Reading only {len(words)} words from {source}")
            break
    if n_skipped:
        rootlog.warning(f"Skipped {n_skipped} lines in {source} "
                        f"that were not {WORDLEN}-letter words")
    rootlog.debug(f"Read {len(words)} words from {source}")
    return words_array(words)


def read_words(wordlist_filename: str,
               max_n: int = None) -> np.ndarray:
    """
    Reads a word list file.
    """
    with open(wordlist_filename) as f:
        return parse_words(f, wordlist_filename, max_n=max_n)


def read_bundled_words(name: str) -> np.ndarray:
    """
    Reads one of the word lists shipped in our ``data`` directory.
    """
    text = (resources.files("qwordle") / "data" / name).read_text()
    return parse_words(text.splitlines(), f"bundled {name}")


class WordSource:
    """
    Supplies the words for a game.

    - Answers: the hidden words are drawn from these, though only words
      without repeated letters are eligible.
    - Guesses: further words the player may guess, that will never be
      hidden. The answers are always acceptable guesses too.
    """
    def __init__(self, answers: Iterable[str],
                 guesses: Iterable[str] = (),
                 seed: int = None) -> None:
        """
        Args:
            answers: words that may be hidden
            guesses: extra words that may be guessed
            seed: seed for the random number generator, for reproducible
                target selection
        """
        answers = [w.upper() for w in answers if WORD_REGEX.match(w)]
        guesses = [w.upper() for w in guesses if WORD_REGEX.match(w)]
        self.candidates = words_array(
            w for w in answers if has_unique_letters(w)
        )
        self.all_words = words_array(answers + guesses)
        self.allowed_words = frozenset(
            self.all_words.tolist()
        )  # type: FrozenSet[str]
        self.rng = np.random.default_rng(seed)
        rootlog.debug(f"Word source: {len(self.all_words)} acceptable "
                      f"guesses, of which {len(self.candidates)} could be "
                      f"hidden")

    @classmethod
    def from_files(cls,
                   answers_filename: str = None,
                   guesses_filename: str = None,
                   seed: int = None) -> "WordSource":
        """
        Creates a word source from word list files. Either list defaults to
        the bundled one.
        """
        if answers_filename:
            answers = read_words(answers_filename)
        else:
            answers = read_bundled_words(BUNDLED_ANSWERS)
        if guesses_filename:
            guesses = read_words(guesses_filename)
        else:
            guesses = read_bundled_words(BUNDLED_GUESSES)
        return cls(answers.tolist(), guesses.tolist(), seed=seed)

    def __len__(self) -> int:
        return len(self.all_words)

    def is_known(self, word: str) -> bool:
        """
        May this word be guessed?
        """
        return word.upper() in self.allowed_words

    def choose_target_pair(
            self, max_attempts: int = MAX_PAIR_ATTEMPTS) -> "TargetPair":
        """
        Picks two different candidate words at random until they share no
        letters.

        Raises:
            NoValidTargetPair: if there aren't two candidates, or we give up
        """
        n = len(self.candidates)
        if n < 2:
            raise NoValidTargetPair(
                f"Need at least two {WORDLEN}-letter words without repeated "
                f"letters; found {n}"
            )
        for attempt in range(1, max_attempts + 1):
            i, j = self.rng.choice(n, size=2, replace=False)
            word1 = str(self.candidates[i])
            word2 = str(self.candidates[j])
            if letters_disjoint(word1, word2):
                rootlog.debug(f"Found target pair on attempt {attempt}")
                return TargetPair(word1, word2)
        raise NoValidTargetPair(
            f"Could not find two words with no letters in common in "
            f"{max_attempts} attempts"
        )


# =============================================================================
# Scoring guesses
# =============================================================================

# -----------------------------------------------------------------------------
# TargetPair
# -----------------------------------------------------------------------------

class TargetPair:
    """
    The two hidden words. Never changes during a game.
    """
    def __init__(self, primary: str, secondary: str) -> None:
        self.primary = primary.upper()
        self.secondary = secondary.upper()
        assert valid_target_pair(self.primary, self.secondary), (
            "Target words must be the same length, with no repeated letters "
            "and no letters in common"
        )

    def __repr__(self) -> str:
        return f"TargetPair({self.primary!r}, {self.secondary!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TargetPair):
            return NotImplemented
        return (
            self.primary == other.primary
            and self.secondary == other.secondary
        )

    @property
    def wordlen(self) -> int:
        return len(self.primary)

    @property
    def words(self) -> Tuple[str, str]:
        return self.primary, self.secondary

    def word(self, target: Target) -> str:
        """
        The word for a given target.
        """
        if target == Target.PRIMARY:
            return self.primary
        elif target == Target.SECONDARY:
            return self.secondary
        else:
            raise AssertionError("bug")


# -----------------------------------------------------------------------------
# LetterFeedback
# -----------------------------------------------------------------------------

class LetterFeedback:
    """
    Feedback for one letter of a guess, and which target (if any) earned it.
    The player is shown only the feedback, never the target.
    """
    def __init__(self, letter: str, feedback: CharFeedback,
                 target: Optional[Target]) -> None:
        assert (target is None) == (feedback == CharFeedback.ABSENT)
        self.letter = letter
        self.feedback = feedback
        self.target = target

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LetterFeedback):
            return NotImplemented
        return (
            self.letter == other.letter
            and self.feedback == other.feedback
            and self.target == other.target
        )

    def __repr__(self) -> str:
        target = self.target.name if self.target else None
        return (f"LetterFeedback({self.letter!r}, {self.feedback.name}, "
                f"{target})")

    @property
    def found(self) -> bool:
        """
        Is this letter in one of the targets?
        """
        return self.feedback != CharFeedback.ABSENT


# -----------------------------------------------------------------------------
# TurnResult
# -----------------------------------------------------------------------------

def split_indicator(
        letters_by_target: Mapping[Target, AbstractSet[str]]) \
        -> SplitIndicator:
    """
    Given the letters found in each target, do they all belong to one word,
    or to both?

    Until some letter has been found, the answer is undetermined.
    """
    n_targets = sum(1 for letters in letters_by_target.values() if letters)
    if n_targets == 0:
        return SplitIndicator.UNDETERMINED
    elif n_targets == 1:
        return SplitIndicator.ALL_SAME_WORD
    return SplitIndicator.SPLIT_ACROSS_WORDS


class TurnResult:
    """
    The outcome of scoring one guess against both targets.
    """
    def __init__(self, guess: str, letters: Sequence[LetterFeedback]) -> None:
        assert len(guess) == len(letters)
        self.guess = guess
        self.letters = tuple(letters)
        by_target = {t: set() for t in Target}  # type: Dict[Target, Set[str]]
        for lf in self.letters:
            if lf.found:
                by_target[lf.target].add(lf.letter)
        self.letters_by_target = {
            t: frozenset(s) for t, s in by_target.items()
        }  # type: Dict[Target, FrozenSet[str]]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TurnResult):
            return NotImplemented
        return self.guess == other.guess and self.letters == other.letters

    def __repr__(self) -> str:
        return f"TurnResult({self.guess!r}, {list(self.letters)!r})"

    def __str__(self) -> str:
        return self.plain_str

    @property
    def feedback(self) -> Tuple[CharFeedback, ...]:
        return tuple(lf.feedback for lf in self.letters)

    @property
    def contributing_targets(self) -> FrozenSet[Target]:
        """
        Targets that supplied at least one correct or present letter.
        """
        return frozenset(t for t, s in self.letters_by_target.items() if s)

    @property
    def split(self) -> SplitIndicator:
        """
        Split indicator from this guess alone. See
        :meth:`GameSession.running_split` for the one shown to the player.
        """
        return split_indicator(self.letters_by_target)

    @property
    def solved_target(self) -> Optional[Target]:
        """
        The target this guess spelled out exactly, if any. Every letter must be
        correct, and must be correct for the same target.
        """
        if not all(lf.feedback == CharFeedback.PRESENT_RIGHT_LOCATION
                   for lf in self.letters):
            return None
        if len(self.contributing_targets) != 1:
            return None
        return next(iter(self.contributing_targets))

    @property
    def colourful_str(self) -> str:
        return "".join(
            color(lf.letter, **lf.feedback.colour_params)
            for lf in self.letters
        )

    @property
    def feedback_str(self) -> str:
        return "".join(f.plain_str for f in self.feedback)

    @property
    def plain_str(self) -> str:
        return f"{self.guess}/{self.feedback_str}"


# -----------------------------------------------------------------------------
# The evaluator
# -----------------------------------------------------------------------------

def classify_letter(letter: str, pos: int, targets: TargetPair) \
        -> Tuple[CharFeedback, Optional[Target]]:
    """
    Scores one letter of a guess at a given (zero-based) position.

    A positional match in either target beats a non-positional one. Within
    each kind of match, the primary target is consulted first. Since each
    target has no repeated letters, there is no need to keep count of letters
    "used up" by other positions, as ordinary Wordle must.
    """
    for target in Target:
        if targets.word(target)[pos] == letter:
            return CharFeedback.PRESENT_RIGHT_LOCATION, target
    for target in Target:
        if letter in targets.word(target):
            return CharFeedback.PRESENT_WRONG_LOCATION, target
    return CharFeedback.ABSENT, None


def normalize_guess(guess: str) -> str:
    return guess.strip()


def validate_guess(guess: str, wordlen: int) -> None:
    """
    Checks that a guess, as typed, could be scored. This happens before
    upper-casing, which can change the length of non-ASCII text.

    Raises:
        LengthMismatch: wrong number of letters
        InvalidLetter: something other than A-Z
    """
    if len(guess) != wordlen:
        raise LengthMismatch(
            f"{guess!r} has {len(guess)} letters; guesses must have "
            f"{wordlen}. Please guess again.",
            guess
        )
    bad = sorted(set(
        c for c in guess if not c.isascii() or c.upper() not in ALPHABET
    ))
    if bad:
        raise InvalidLetter(
            f"{guess!r} contains {', '.join(repr(c) for c in bad)}; use only "
            f"the letters A-Z. Please guess again.",
            guess
        )


def evaluate(guess: str, targets: TargetPair) -> TurnResult:
    """
    Scores a guess against both hidden words. Pure: no state, no I/O.

    Each position is scored independently of the others, so a letter
    repeated in the guess gets a tag at each position.

    Args:
        guess: the player's guess (case-insensitive)
        targets: the hidden words

    Returns:
        the per-letter feedback, and which targets supplied letters

    Raises:
        LengthMismatch, InvalidLetter
    """
    word = normalize_guess(guess)
    validate_guess(word, targets.wordlen)
    word = word.upper()
    letters = []  # type: List[LetterFeedback]
    for pos, letter in enumerate(word):
        feedback, target = classify_letter(letter, pos, targets)
        letters.append(LetterFeedback(letter, feedback, target))
    return TurnResult(word, letters)


# =============================================================================
# Game session
# =============================================================================

class GameSession:
    """
    One game: the hidden words, the guesses so far, and whether the game has
    been won or lost.

    The split indicator shown to the player accumulates over the whole game.
    Each turn's letters are merged into the session's running record here;
    :func:`evaluate` only knows about the current guess.
    """
    def __init__(self,
                 targets: TargetPair,
                 max_guesses: int = N_GUESSES,
                 allowed_words: Collection[str] = None) -> None:
        """
        Args:
            targets: the hidden words
            max_guesses: guesses allowed before the game is lost
            allowed_words: if given, guesses must be in here (or be one of the
                targets)

        Raises:
            ValueError: if max_guesses is less than 1
        """
        if max_guesses < 1:
            raise ValueError(
                f"max_guesses must be at least 1, not {max_guesses}")
        self.targets = targets
        self.max_guesses = max_guesses
        self.allowed_words = (
            frozenset(w.upper() for w in allowed_words)
            if allowed_words is not None else None
        )  # type: Optional[FrozenSet[str]]
        self.history = []  # type: List[TurnResult]
        self.guess_count = 0
        self.status = GameStatus.IN_PROGRESS
        self.running_letters = {
            t: set() for t in Target
        }  # type: Dict[Target, Set[str]]

    # -------------------------------------------------------------------------
    # Playing
    # -------------------------------------------------------------------------

    def guess(self, word: str) -> TurnResult:
        """
        Scores a guess and advances the game. A rejected guess changes
        nothing.

        Raises:
            GameOver: the game has already finished
            GuessError: the guess was rejected
        """
        if self.status != GameStatus.IN_PROGRESS:
            raise GameOver(f"The game is over ({self.status.name})")
        result = evaluate(word, self.targets)
        if (self.allowed_words is not None
                and result.guess not in self.allowed_words
                and result.guess not in self.targets.words):
            raise UnknownWord(
                f"{result.guess} is not in the word list. Please guess again.",
                result.guess
            )
        self.history.append(result)
        self.guess_count += 1
        for target, letters in result.letters_by_target.items():
            self.running_letters[target].update(letters)
        if result.solved_target is not None:
            self.status = GameStatus.WON
        elif self.guess_count >= self.max_guesses:
            self.status = GameStatus.LOST
        rootlog.debug(f"Guess {self.guess_count}: {result.plain_str} -> "
                      f"{self.status.name}")
        return result

    # -------------------------------------------------------------------------
    # Info
    # -------------------------------------------------------------------------

    @property
    def in_progress(self) -> bool:
        return self.status == GameStatus.IN_PROGRESS

    @property
    def guesses_remaining(self) -> int:
        return self.max_guesses - self.guess_count

    def out_of_guesses(self) -> bool:
        return self.guess_count >= self.max_guesses

    @property
    def running_split(self) -> SplitIndicator:
        """
        Split indicator across all guesses so far.
        """
        return split_indicator(self.running_letters)

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    @property
    def answers_str(self) -> str:
        return f"{self.targets.primary} and {self.targets.secondary}"

    @property
    def guess_prompt(self) -> str:
        return f"Guess {self.guess_count + 1}/{self.max_guesses}: "

    @property
    def won_message(self) -> str:
        return f"Congratulations! The answers were {self.answers_str}"

    @property
    def lost_message(self) -> str:
        return f"Bad luck! The answers were {self.answers_str}"

    @property
    def abandoned_message(self) -> str:
        return f"Game abandoned. The answers were {self.answers_str}"


# =============================================================================
# Interactive play
# =============================================================================

def render_turn(result: TurnResult, split: SplitIndicator,
                colour: bool = True) -> str:
    """
    One line of output for a guess: the letters, then (unless the guess won)
    the split indicator.
    """
    row = result.colourful_str if colour else result.plain_str
    if result.solved_target is not None:
        return row
    return f"{row}  {split.plain_str}"


def read_guess(prompt: str, input_func: Callable[[str], str] = None) -> str:
    """
    Read a guess from the user.
    """
    input_func = input_func or input
    return normalize_guess(input_func(prompt))


def start_game(word_source: WordSource,
               max_guesses: int = N_GUESSES,
               allow_any_guess: bool = False) -> GameSession:
    """
    Hides two words and sets up a game.

    Raises:
        NoValidTargetPair
    """
    with log_duration("Choosing target pair"):
        targets = word_source.choose_target_pair()
    rootlog.debug(f"Targets: {targets}")
    allowed = None if allow_any_guess else word_source.allowed_words
    return GameSession(targets, max_guesses=max_guesses,
                       allowed_words=allowed)


def play_interactive(
        session: GameSession,
        colour: bool = True,
        input_func: Callable[[str], str] = None,
        output_func: Callable[[str], None] = None) -> GameStatus:
    """
    Play a game with the user until it is won, lost, or input runs out.

    Returns the final status (still in progress if abandoned).
    """
    output_func = output_func or print
    output_func(
        f"Welcome to QWordle! Two {session.targets.wordlen}-letter words are "
        f"hidden, with no letters in common. Find either one in "
        f"{session.max_guesses} guesses."
    )
    while session.in_progress:
        try:
            guess = read_guess(session.guess_prompt, input_func)
        except EOFError:
            output_func("")
            output_func(session.abandoned_message)
            rootlog.info(f"Abandoned after {session.guess_count} guesses")
            return session.status
        try:
            result = session.guess(guess)
        except GuessError as e:
            rootlog.debug(f"Rejected guess {e.guess!r}: {e}")
            output_func(str(e))
            continue
        output_func(render_turn(result, session.running_split, colour=colour))

    if session.status == GameStatus.WON:
        output_func(session.won_message)
        rootlog.info(f"Success in {session.guess_count} guesses.")
    else:
        output_func(session.lost_message)
        rootlog.info("Out of guesses!")
    return session.status


# =============================================================================
# Self-testing
# =============================================================================

class ScriptedInput:
    """
    Stands in for :func:`input`, returning prepared lines and then raising
    EOFError.
    """
    def __init__(self, lines: Iterable[str]) -> None:
        self.lines = list(lines)
        self.prompts = []  # type: List[str]

    def __call__(self, prompt: str = "") -> str:
        self.prompts.append(prompt)
        if not self.lines:
            raise EOFError
        return self.lines.pop(0)


class TestEvaluator(unittest.TestCase):
    TARGETS = TargetPair("CRANE", "MOULD")

    @staticmethod
    def _tags(result: TurnResult) -> List[Tuple[CharFeedback,
                                                Optional[Target]]]:
        return [(lf.feedback, lf.target) for lf in result.letters]

    def test_guess_primary(self) -> None:
        r = evaluate("CRANE", self.TARGETS)
        self.assertEqual(r.feedback_str, "=====")
        self.assertEqual(r.contributing_targets, {Target.PRIMARY})
        self.assertEqual(r.split, SplitIndicator.ALL_SAME_WORD)
        self.assertEqual(r.solved_target, Target.PRIMARY)

    def test_guess_secondary(self) -> None:
        r = evaluate("mould", self.TARGETS)
        self.assertEqual(r.guess, "MOULD")
        self.assertEqual(r.feedback_str, "=====")
        self.assertEqual(r.contributing_targets, {Target.SECONDARY})
        self.assertEqual(r.solved_target, Target.SECONDARY)

    def test_split_across_words(self) -> None:
        r = evaluate("MOUSE", self.TARGETS)
        c, a = CharFeedback.PRESENT_RIGHT_LOCATION, CharFeedback.ABSENT
        self.assertEqual(self._tags(r), [
            (c, Target.SECONDARY),
            (c, Target.SECONDARY),
            (c, Target.SECONDARY),
            (a, None),
            (c, Target.PRIMARY),
        ])
        self.assertEqual(r.contributing_targets,
                         {Target.PRIMARY, Target.SECONDARY})
        self.assertEqual(r.split, SplitIndicator.SPLIT_ACROSS_WORDS)
        self.assertIsNone(r.solved_target)

    def test_all_correct_from_both_words_is_not_a_win(self) -> None:
        r = evaluate("MOUNE", self.TARGETS)
        self.assertEqual(r.feedback_str, "=====")
        self.assertIsNone(r.solved_target)

    def test_present(self) -> None:
        r = evaluate("NACRE", self.TARGETS)
        self.assertEqual(r.feedback_str, "---==")
        self.assertEqual(r.contributing_targets, {Target.PRIMARY})
        r = evaluate("DOLTS", self.TARGETS)
        self.assertEqual(r.feedback_str, "-=-__")
        self.assertEqual(r.split, SplitIndicator.ALL_SAME_WORD)

    def test_absent(self) -> None:
        r = evaluate("BIGHT", self.TARGETS)
        self.assertEqual(r.feedback_str, "_____")
        self.assertEqual(r.contributing_targets, frozenset())
        self.assertEqual(r.split, SplitIndicator.UNDETERMINED)
        for lf in r.letters:
            self.assertIsNone(lf.target)

    def test_single_letter_is_same_word(self) -> None:
        r = evaluate("CHIPS", self.TARGETS)
        self.assertEqual(r.feedback_str, "=____")
        self.assertEqual(r.contributing_targets, {Target.PRIMARY})
        self.assertEqual(r.split, SplitIndicator.ALL_SAME_WORD)

    def test_repeated_guess_letters_scored_independently(self) -> None:
        r = evaluate("EERIE", self.TARGETS)
        self.assertEqual(r.feedback_str, "---_=")
        self.assertEqual(r.letters_by_target[Target.PRIMARY], {"E", "R"})

    def test_targets_are_symmetric(self) -> None:
        targets = TargetPair("MOULD", "CRANE")
        r = evaluate("MOUSE", targets)
        self.assertEqual(r.letters_by_target[Target.PRIMARY],
                         {"M", "O", "U"})
        self.assertEqual(r.letters_by_target[Target.SECONDARY], {"E"})

    def test_never_attributed_to_both_targets(self) -> None:
        for guess in ("MOUSE", "NACRE", "EERIE", "LUNAR", "DOLCE"):
            r = evaluate(guess, self.TARGETS)
            self.assertFalse(r.letters_by_target[Target.PRIMARY].intersection(
                r.letters_by_target[Target.SECONDARY]))

    def test_idempotent(self) -> None:
        self.assertEqual(evaluate("LUNAR", self.TARGETS),
                         evaluate("LUNAR", self.TARGETS))

    def test_length_mismatch(self) -> None:
        with self.assertRaises(LengthMismatch):
            evaluate("CRAN", self.TARGETS)
        with self.assertRaises(LengthMismatch):
            evaluate("CRANES", self.TARGETS)
        with self.assertRaises(LengthMismatch):
            evaluate("CR4N", self.TARGETS)

    def test_invalid_letter(self) -> None:
        with self.assertRaises(InvalidLetter) as cm:
            evaluate("CR4NE", self.TARGETS)
        self.assertEqual(cm.exception.guess, "CR4NE")
        self.assertIn("'4'", str(cm.exception))
        with self.assertRaises(InvalidLetter):
            evaluate("CR NE", self.TARGETS)

    def test_non_ascii_letters_are_invalid(self) -> None:
        # Upper-casing would make this six letters long.
        with self.assertRaises(InvalidLetter) as cm:
            evaluate("CRAN\u00df", self.TARGETS)
        self.assertEqual(cm.exception.guess, "CRAN\u00df")
        # ... and this one an I.
        with self.assertRaises(InvalidLetter):
            evaluate("M\u0131NOR", self.TARGETS)

    def test_guess_errors_are_value_errors(self) -> None:
        with self.assertRaises(ValueError):
            evaluate("", self.TARGETS)

    def test_plain_str(self) -> None:
        r = evaluate("LUNAR", self.TARGETS)
        self.assertEqual(str(r), "LUNAR/-----")

    def test_comparison_with_other_types(self) -> None:
        r = evaluate("LUNAR", self.TARGETS)
        self.assertNotEqual(r, "LUNAR")
        self.assertNotEqual(r.letters[0], "L")
        self.assertNotEqual(self.TARGETS, ("CRANE", "MOULD"))
        self.assertFalse(self.TARGETS == None)  # noqa: E711


class TestSplitIndicator(unittest.TestCase):
    def test_rules(self) -> None:
        p, s = Target.PRIMARY, Target.SECONDARY
        self.assertEqual(split_indicator({p: set(), s: set()}),
                         SplitIndicator.UNDETERMINED)
        self.assertEqual(split_indicator({p: {"C"}, s: set()}),
                         SplitIndicator.ALL_SAME_WORD)
        self.assertEqual(split_indicator({p: {"C", "R"}, s: set()}),
                         SplitIndicator.ALL_SAME_WORD)
        self.assertEqual(split_indicator({p: set(), s: {"M", "O"}}),
                         SplitIndicator.ALL_SAME_WORD)
        self.assertEqual(split_indicator({p: {"C"}, s: {"M"}}),
                         SplitIndicator.SPLIT_ACROSS_WORDS)


class TestGameSession(unittest.TestCase):
    def setUp(self) -> None:
        self.targets = TargetPair("CRANE", "MOULD")

    def test_win(self) -> None:
        session = GameSession(self.targets)
        session.guess("MOUSE")
        self.assertEqual(session.status, GameStatus.IN_PROGRESS)
        session.guess("crane")
        self.assertEqual(session.status, GameStatus.WON)
        self.assertEqual(session.guess_count, 2)
        self.assertEqual(len(session.history), 2)
        with self.assertRaises(GameOver):
            session.guess("MOULD")

    def test_loss(self) -> None:
        session = GameSession(self.targets, max_guesses=2)
        session.guess("BIGHT")
        self.assertTrue(session.in_progress)
        self.assertEqual(session.guesses_remaining, 1)
        session.guess("FIZZY")
        self.assertEqual(session.status, GameStatus.LOST)
        self.assertTrue(session.out_of_guesses())
        self.assertEqual(session.lost_message,
                         "Bad luck! The answers were CRANE and MOULD")

    def test_max_guesses_must_be_positive(self) -> None:
        with self.assertRaises(ValueError):
            GameSession(self.targets, max_guesses=0)

    def test_win_on_last_guess(self) -> None:
        session = GameSession(self.targets, max_guesses=1)
        session.guess("MOULD")
        self.assertEqual(session.status, GameStatus.WON)

    def test_rejected_guess_does_not_use_a_turn(self) -> None:
        session = GameSession(self.targets, max_guesses=1)
        for bad in ("CRAN", "CR4NE"):
            with self.assertRaises(GuessError):
                session.guess(bad)
        self.assertEqual(session.guess_count, 0)
        self.assertEqual(session.history, [])
        self.assertEqual(session.status, GameStatus.IN_PROGRESS)
        self.assertEqual(session.guess_prompt, "Guess 1/1: ")

    def test_unknown_word(self) -> None:
        session = GameSession(self.targets, allowed_words=["mouse", "BIGHT"])
        with self.assertRaises(UnknownWord):
            session.guess("XYZZY")
        self.assertEqual(session.guess_count, 0)
        session.guess("MOUSE")
        # The targets are always acceptable
        session.guess("CRANE")
        self.assertEqual(session.status, GameStatus.WON)

    def test_running_split(self) -> None:
        session = GameSession(self.targets)
        session.guess("BIGHT")
        self.assertEqual(session.running_split, SplitIndicator.UNDETERMINED)
        session.guess("CHIPS")
        self.assertEqual(session.running_split, SplitIndicator.ALL_SAME_WORD)
        session.guess("TWERP")
        self.assertEqual(session.running_split, SplitIndicator.ALL_SAME_WORD)
        r = session.guess("STYLI")
        self.assertEqual(r.split, SplitIndicator.ALL_SAME_WORD)
        self.assertEqual(session.running_split,
                         SplitIndicator.SPLIT_ACROSS_WORDS)
        self.assertEqual(session.running_letters[Target.PRIMARY],
                         {"C", "E", "R"})
        self.assertEqual(session.running_letters[Target.SECONDARY], {"L"})


class TestWordSource(unittest.TestCase):
    def test_candidates_exclude_repeated_letters(self) -> None:
        ws = WordSource(["crane", "MOULD", "SHEEP", "toolong", "MOULD"])
        self.assertEqual(list(ws.all_words), ["CRANE", "MOULD", "SHEEP"])
        self.assertEqual(list(ws.candidates), ["CRANE", "MOULD"])
        self.assertEqual(len(ws), 3)
        self.assertTrue(ws.is_known("sheep"))
        self.assertFalse(ws.is_known("TOOLONG"))

    def test_guess_only_words(self) -> None:
        ws = WordSource(["CRANE", "MOULD"],
                        guesses=["adieu", "BIGHT", "CRANE"])
        self.assertEqual(list(ws.all_words),
                         ["ADIEU", "BIGHT", "CRANE", "MOULD"])
        self.assertEqual(list(ws.candidates), ["CRANE", "MOULD"])
        self.assertTrue(ws.is_known("ADIEU"))
        for seed in range(20):
            pair = WordSource(["CRANE", "MOULD"], guesses=["BIGHT"],
                              seed=seed).choose_target_pair()
            self.assertEqual(set(pair.words), {"CRANE", "MOULD"})

    def test_choose_target_pair(self) -> None:
        ws = WordSource(["CRANE", "MOULD", "SHEEP"], seed=1)
        pair = ws.choose_target_pair()
        self.assertEqual(set(pair.words), {"CRANE", "MOULD"})

    def test_seeded_choice_is_reproducible(self) -> None:
        words = ["CRANE", "MOULD", "BIGHT", "SPUNK", "FJORD", "WALTZ"]
        pair1 = WordSource(words, seed=42).choose_target_pair()
        pair2 = WordSource(words, seed=42).choose_target_pair()
        self.assertEqual(pair1, pair2)
        self.assertTrue(valid_target_pair(*pair1.words))

    def test_no_valid_pair(self) -> None:
        with self.assertRaises(NoValidTargetPair):
            WordSource(["CRANE", "TRACE", "CRATE"]).choose_target_pair(
                max_attempts=10)
        with self.assertRaises(NoValidTargetPair):
            WordSource(["CRANE", "SHEEP"]).choose_target_pair()
        with self.assertRaises(NoValidTargetPair):
            WordSource([]).choose_target_pair()

    def test_valid_target_pair(self) -> None:
        self.assertTrue(valid_target_pair("CRANE", "MOULD"))
        self.assertFalse(valid_target_pair("CRANE", "CLOUD"))
        self.assertFalse(valid_target_pair("SHEEP", "MOULD"))
        self.assertFalse(valid_target_pair("CRANE", "MOLD"))


class TestWordLists(unittest.TestCase):
    def test_make_and_read_wordlist(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            source = os.path.join(tmpdir, "dict.txt")
            dest = os.path.join(tmpdir, "words.txt")
            with open(source, "wt") as f:
                f.write("crane\nCrane\napple's\nabc\nmould\n\nSheep\n")
            make_wordlist(source, dest)
            with open(dest) as f:
                self.assertEqual(f.read(), "CRANE\nMOULD\nSHEEP\n")
            self.assertEqual(list(read_words(dest)),
                             ["CRANE", "MOULD", "SHEEP"])
            self.assertEqual(len(read_words(dest, max_n=2)), 2)
            ws = WordSource.from_files(dest, seed=0)
            self.assertEqual(list(ws.candidates), ["CRANE", "MOULD"])
            ws = WordSource.from_files(dest, guesses_filename=dest)
            self.assertEqual(len(ws), 3)

    def test_bundled_wordlists(self) -> None:
        ws = WordSource.from_files(seed=0)
        self.assertGreater(len(ws.candidates), 100)
        self.assertGreater(len(ws), len(ws.candidates))
        self.assertTrue(ws.is_known("ADIEU"))
        self.assertNotIn("ADIEU", ws.candidates)
        self.assertEqual(len(read_bundled_words(BUNDLED_ANSWERS)), 600)
        pair = ws.choose_target_pair()
        self.assertTrue(valid_target_pair(*pair.words))


class TestPlayInteractive(unittest.TestCase):
    def setUp(self) -> None:
        self.targets = TargetPair("CRANE", "MOULD")
        self.output = []  # type: List[str]

    def _play(self, session: GameSession, lines: List[str]) -> GameStatus:
        return play_interactive(session, colour=False,
                                input_func=ScriptedInput(lines),
                                output_func=self.output.append)

    def test_win_after_rejections(self) -> None:
        session = GameSession(self.targets)
        status = self._play(session, ["cran", "cr4ne", "mouse", "crane"])
        self.assertEqual(status, GameStatus.WON)
        self.assertEqual(session.guess_count, 2)
        self.assertTrue(any("guesses must have 5" in x for x in self.output))
        self.assertTrue(any("use only the letters" in x for x in self.output))
        self.assertIn("MOUSE/===_=  (both words)", self.output)
        self.assertIn("CRANE/=====", self.output)
        self.assertEqual(self.output[-1],
                         "Congratulations! The answers were CRANE and MOULD")

    def test_loss(self) -> None:
        session = GameSession(self.targets, max_guesses=2)
        status = self._play(session, ["BIGHT", "NACRE", "MOULD"])
        self.assertEqual(status, GameStatus.LOST)
        self.assertIn("BIGHT/_____  (undetermined)", self.output)
        self.assertIn("NACRE/---==  (same word)", self.output)
        self.assertEqual(self.output[-1], session.lost_message)

    def test_end_of_input(self) -> None:
        session = GameSession(self.targets)
        status = self._play(session, ["BIGHT"])
        self.assertEqual(status, GameStatus.IN_PROGRESS)
        self.assertEqual(self.output[-1], session.abandoned_message)

    def test_prompts(self) -> None:
        scripted = ScriptedInput(["BIGHT", "BIGH", "CRANE"])
        play_interactive(GameSession(self.targets), colour=True,
                         input_func=scripted,
                         output_func=self.output.append)
        self.assertEqual(scripted.prompts,
                         ["Guess 1/6: ", "Guess 2/6: ", "Guess 2/6: "])

    def test_start_game(self) -> None:
        ws = WordSource(["CRANE", "MOULD"], seed=3)
        session = start_game(ws, max_guesses=4)
        self.assertEqual(session.max_guesses, 4)
        self.assertEqual(session.allowed_words, {"CRANE", "MOULD"})
        session = start_game(ws, allow_any_guess=True)
        self.assertIsNone(session.allowed_words)


class TestCommandLine(unittest.TestCase):
    def _write_words(self, tmpdir: str, words: List[str]) -> str:
        filename = os.path.join(tmpdir, "words.txt")
        with open(filename, "wt") as f:
            f.write("\n".join(words) + "\n")
        return filename

    def test_missing_wordlist(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            missing = os.path.join(tmpdir, "nonexistent.txt")
            with self.assertRaises(SystemExit) as cm:
                main(["--wordlist_filename", missing, "play"])
            self.assertEqual(cm.exception.code, EXIT_FAILURE)

    def test_no_valid_pair(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            filename = self._write_words(tmpdir, ["CRANE", "TRACE"])
            with self.assertRaises(SystemExit) as cm:
                main(["--wordlist_filename", filename, "play"])
            self.assertEqual(cm.exception.code, EXIT_FAILURE)

    def test_play_to_the_end(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            filename = self._write_words(tmpdir, ["CRANE", "MOULD"])
            with mock.patch("builtins.input",
                            side_effect=["CRANE", "MOULD"]), \
                    mock.patch("builtins.print") as mock_print:
                main(["--wordlist_filename", filename, "play", "--seed", "7",
                      "--plain"])
            printed = [c.args[0] for c in mock_print.call_args_list]
            self.assertEqual(
                printed[-1],
                "Congratulations! The answers were "
                + " and ".join(
                    WordSource(["CRANE", "MOULD"],
                               seed=7).choose_target_pair().words
                )
            )

    def test_abandon(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            filename = self._write_words(tmpdir, ["CRANE", "MOULD"])
            with mock.patch("builtins.input", side_effect=EOFError), \
                    mock.patch("builtins.print"):
                main(["--wordlist_filename", filename, "play"])

    def test_make_wordlist(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            source = self._write_words(tmpdir, ["crane", "zebras", "mould"])
            dest = os.path.join(tmpdir, "out.txt")
            main(["--wordlist_filename", dest, "make_wordlist",
                  "--source_dict", source])
            self.assertEqual(list(read_words(dest)), ["CRANE", "MOULD"])

    def test_make_wordlist_needs_destination(self) -> None:
        with self.assertRaises(SystemExit) as cm:
            main(["make_wordlist"])
        self.assertEqual(cm.exception.code, 2)

    def test_guess_list_option(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            answers = self._write_words(tmpdir, ["CRANE", "MOULD"])
            guesses = os.path.join(tmpdir, "guesses.txt")
            with open(guesses, "wt") as f:
                f.write("QUILT\n")
            with mock.patch("builtins.input",
                            side_effect=["ADIEU", "QUILT", "CRANE"]), \
                    mock.patch("builtins.print") as mock_print:
                main(["--wordlist_filename", answers,
                      "--guesslist_filename", guesses, "play", "--plain"])
            printed = [c.args[0] for c in mock_print.call_args_list]
            self.assertIn("ADIEU is not in the word list. Please guess again.",
                          printed)
            self.assertIn("QUILT/_-_=_  (same word)", printed)


# =============================================================================
# Command-line entry point
# =============================================================================

def main(argv: List[str] = None) -> None:
    # -------------------------------------------------------------------------
    # Arguments
    # -------------------------------------------------------------------------
    parser = argparse.ArgumentParser(
        description="QWordle: find either of two hidden words.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "--wordlist_filename",
        help=f"File of {WORDLEN}-letter words, one per line, from which the "
             f"hidden words are chosen (default: the bundled list). For "
             f"make_wordlist, the file to write."
    )
    parser.add_argument(
        "--guesslist_filename",
        help=f"File of further {WORDLEN}-letter words that may be guessed "
             f"but are never hidden (default: the bundled list)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Be verbose"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    cmd_play = "play"
    parser_play = subparsers.add_parser(
        cmd_play,
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser_play.add_argument(
        "--max_guesses", type=int, default=N_GUESSES,
        help="Number of guesses allowed"
    )
    parser_play.add_argument(
        "--seed", type=int,
        help="Seed for choosing the hidden words (for a repeatable game)"
    )
    parser_play.add_argument(
        "--allow_any_guess", action="store_true",
        help="Accept any string of letters as a guess, not just words in the "
             "word list"
    )
    parser_play.add_argument(
        "--plain", action="store_true",
        help="Plain text feedback, without colour"
    )

    cmd_make = "make_wordlist"
    parser_make = subparsers.add_parser(
        cmd_make,
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser_make.add_argument(
        "--source_dict", default=DEFAULT_OS_DICT,
        help="File of all dictionary words."
    )

    args = parser.parse_args(argv)
    if args.command == cmd_play and args.max_guesses < 1:
        parser.error("--max_guesses must be at least 1")
    if args.command == cmd_make and not args.wordlist_filename:
        parser.error("make_wordlist needs --wordlist_filename to write to")

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    loglevel = logging.DEBUG if args.verbose else logging.INFO
    main_only_quicksetup_rootlogger(level=loglevel)

    # -------------------------------------------------------------------------
    # Act
    # -------------------------------------------------------------------------
    if args.command == cmd_make:
        try:
            make_wordlist(args.source_dict, args.wordlist_filename)
        except OSError as e:
            rootlog.critical(f"Could not make word list: {e}")
            sys.exit(EXIT_FAILURE)
    elif args.command == cmd_play:
        try:
            word_source = WordSource.from_files(
                answers_filename=args.wordlist_filename,
                guesses_filename=args.guesslist_filename,
                seed=args.seed,
            )
            session = start_game(
                word_source,
                max_guesses=args.max_guesses,
                allow_any_guess=args.allow_any_guess,
            )
        except (OSError, NoValidTargetPair) as e:
            rootlog.critical(f"Could not start a game: {e}")
            sys.exit(EXIT_FAILURE)
        play_interactive(session, colour=not args.plain)
    else:
        raise AssertionError("argument-parsing bug")


if __name__ == '__main__':
    main()
