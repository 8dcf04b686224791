from models import db
from datetime import datetime


class UserPhraseProgress(db.Model):
    """UserPhraseProgress model - one verified answer attempt of a user on a phrase"""
    __tablename__ = 'user_phrase_progress'

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    phrase_id = db.Column(db.Integer, db.ForeignKey('phrases.id'), nullable=False)

    user_answer = db.Column(db.Text, nullable=False)
    ai_feedback = db.Column(db.Text)
    is_correct = db.Column(db.Boolean, nullable=False, default=False)

    # 0-100, as graded by the LLM
    accuracy_score = db.Column(db.Integer)

    # Arrays of words e.g. ["kaffee", "bestellen"]
    words_learned_json = db.Column(db.JSON)
    words_forgotten_json = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    user = db.relationship('User', back_populates='progress')
    phrase = db.relationship('Phrase', back_populates='progress')

    __table_args__ = (
        db.Index('idx_progress_user_created', 'user_id', 'created_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'phrase_id': self.phrase_id,
            'user_answer': self.user_answer,
            'ai_feedback': self.ai_feedback,
            'is_correct': self.is_correct,
            'accuracy_score': self.accuracy_score,
            'words_learned': self.words_learned_json or [],
            'words_forgotten': self.words_forgotten_json or [],
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<UserPhraseProgress user_id={self.user_id} phrase_id={self.phrase_id} correct={self.is_correct}>'
