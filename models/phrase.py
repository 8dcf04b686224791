from models import db
from datetime import datetime, timezone
from sqlalchemy.orm import validates

CEFR_LEVELS = ('A1', 'A2', 'B1', 'B2', 'C1', 'C2')
DIFFICULTIES = ('BEGINNER', 'INTERMEDIATE', 'ADVANCED')

# CEFR level -> difficulty bucket
CEFR_DIFFICULTY = {
    'A1': 'BEGINNER',
    'A2': 'BEGINNER',
    'B1': 'INTERMEDIATE',
    'B2': 'INTERMEDIATE',
    'C1': 'ADVANCED',
    'C2': 'ADVANCED',
}


class Phrase(db.Model):
    """Phrase model - a practice sentence in the native language with its translation"""
    __tablename__ = 'phrases'

    id = db.Column(db.Integer, primary_key=True)

    native_language_code = db.Column(db.String(10), db.ForeignKey('languages.code'), nullable=False, index=True)
    learning_language_code = db.Column(db.String(10), db.ForeignKey('languages.code'), nullable=False, index=True)

    native_text = db.Column(db.String, nullable=False)
    learning_text = db.Column(db.String, nullable=False)

    # Situation prompt in the learning language, e.g. "Wie würden Sie einen Kaffee bestellen?"
    situation_text = db.Column(db.String)
    expected_answer = db.Column(db.String)
    # Native-language note on what the situation asks for
    situation_explanation = db.Column(db.Text)

    difficulty = db.Column(db.String(20), nullable=False, default='BEGINNER')
    cefr_level = db.Column(db.String(2), nullable=False, default='A1')
    category = db.Column(db.String)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    native_language = db.relationship('Language', foreign_keys=[native_language_code])
    learning_language = db.relationship('Language', foreign_keys=[learning_language_code])
    word_explanations = db.relationship('WordExplanation', back_populates='phrase', lazy='dynamic',
                                        cascade='all, delete-orphan')
    progress = db.relationship('UserPhraseProgress', back_populates='phrase', lazy='dynamic',
                               cascade='all, delete-orphan')

    @validates('native_text', 'learning_text')
    def validate_text(self, key, text):
        if not text or not text.strip():
            raise ValueError(f'{key} cannot be empty or whitespace')
        return text.strip()

    @validates('cefr_level')
    def validate_cefr_level(self, key, level):
        if level not in CEFR_LEVELS:
            raise ValueError(f'Invalid CEFR level: {level}. Must be one of {", ".join(CEFR_LEVELS)}')
        return level

    @validates('difficulty')
    def validate_difficulty(self, key, difficulty):
        if difficulty not in DIFFICULTIES:
            raise ValueError(f'Invalid difficulty: {difficulty}. Must be one of {", ".join(DIFFICULTIES)}')
        return difficulty

    @property
    def explained_sentence(self) -> str:
        """The sentence whose words must carry explanations"""
        return self.situation_text or self.learning_text

    @property
    def answer_text(self) -> str:
        return self.expected_answer or self.learning_text

    def to_dict(self):
        return {
            'id': self.id,
            'native_language_code': self.native_language_code,
            'learning_language_code': self.learning_language_code,
            'native_text': self.native_text,
            'learning_text': self.learning_text,
            'situation_text': self.situation_text,
            'expected_answer': self.expected_answer,
            'situation_explanation': self.situation_explanation,
            'difficulty': self.difficulty,
            'cefr_level': self.cefr_level,
            'category': self.category,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<Phrase {self.id} {self.native_text!r} ({self.native_language_code}->{self.learning_language_code})>'
