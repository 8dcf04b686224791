from models import db
from datetime import datetime


class WordExplanation(db.Model):
    """WordExplanation model - per-word explanation of a phrase for one language pair"""
    __tablename__ = 'word_explanations'

    id = db.Column(db.Integer, primary_key=True)

    phrase_id = db.Column(db.Integer, db.ForeignKey('phrases.id'), nullable=False, index=True)

    # Normalized form: punctuation stripped, trimmed, lowercased
    word = db.Column(db.String, nullable=False)

    native_language_code = db.Column(db.String(10), db.ForeignKey('languages.code'), nullable=False)
    learning_language_code = db.Column(db.String(10), db.ForeignKey('languages.code'), nullable=False)

    translation = db.Column(db.String, nullable=False)
    explanation = db.Column(db.Text, nullable=False)

    # [{"learning_text": "...", "native_text": "..."}, ...]
    examples_json = db.Column(db.JSON)

    # Lazily generated on first grammar request
    grammar_explanation = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    phrase = db.relationship('Phrase', back_populates='word_explanations')

    # At most one explanation per word per phrase per language pair
    __table_args__ = (
        db.UniqueConstraint('phrase_id', 'word', 'native_language_code', 'learning_language_code',
                            name='uq_word_explanation_phrase_word_languages'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'phrase_id': self.phrase_id,
            'word': self.word,
            'translation': self.translation,
            'explanation': self.explanation,
            'examples': self.examples_json or [],
            'grammar_explanation': self.grammar_explanation
        }

    def __repr__(self):
        return f'<WordExplanation phrase_id={self.phrase_id} word={self.word!r}>'
