import re
from typing import List

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer, ENGLISH_STOP_WORDS

# Journal filler that says nothing about the topic of an entry
JOURNAL_STOP_WORDS = ['feel', 'feeling', 'felt', 'today', 'day', 'really', 'just', 'like',
                      'think', 'im', 'ive', 'dont', 'got', 'get', 'good', 'bad', 'okay', 'lot']


def extract_keywords(text: str, num_keywords: int = 5) -> List[str]:
    """Extracts the main keywords of a journal entry using TF-IDF.

    Each sentence is treated as a document so that words recurring across
    the entry score higher than one-off mentions.

    Args:
        text: The journal entry text.
        num_keywords: The maximum number of keywords to return.

    Returns:
        Keywords ordered by descending score; empty if the text has no usable words.
    """
    if not text or not text.strip():
        return []

    # Preprocess text: lowercase, remove punctuation, one document per sentence
    sentences = [
        re.sub(r'[^\w\s]', '', sentence.lower())
        for sentence in re.split(r'[.!?\n]+', text)
    ]
    corpus = [sentence for sentence in sentences if sentence.strip()]
    if not corpus:
        return []

    try:
        stop_words = list(ENGLISH_STOP_WORDS) + JOURNAL_STOP_WORDS
        vectorizer = TfidfVectorizer(stop_words=stop_words, max_features=50)
        tfidf_matrix = vectorizer.fit_transform(corpus)
    except ValueError:
        # Vocabulary is empty after stop word removal
        return []

    feature_names = vectorizer.get_feature_names_out()
    scores = np.asarray(tfidf_matrix.sum(axis=0)).ravel()

    sorted_indices = scores.argsort()[::-1]
    return [str(feature_names[i]) for i in sorted_indices[:num_keywords] if scores[i] > 0]
