from datetime import datetime, timezone

from rgb_game import db


def utcnow():
    return datetime.now(timezone.utc)


class GameSession(db.Model):
    """One room. The whole game state lives in `document` and commits as a unit."""
    __tablename__ = 'game_session'
    game_id = db.Column(db.String(8), primary_key=True)
    document = db.Column(db.JSON, nullable=False)
    # Bumped on every write; conditional updates compare against it
    version = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)


class Connection(db.Model):
    __tablename__ = 'connection'
    connection_id = db.Column(db.String(64), primary_key=True)
    game_id = db.Column(db.String(8), nullable=True, index=True)
    player_id = db.Column(db.String(16), nullable=True)
    connected_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)


class ChallengePrompt(db.Model):
    __tablename__ = 'challenge_prompt'
    prompt_id = db.Column(db.String(10), primary_key=True)  # ISO date
    prompt = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(16), default='queued', nullable=False)  # queued, used


class Challenge(db.Model):
    __tablename__ = 'challenge'
    challenge_id = db.Column(db.String(10), primary_key=True)  # ISO date (UTC)
    prompt = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(16), default='active', nullable=False)
    valid_from = db.Column(db.DateTime(timezone=True), nullable=False)
    valid_until = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    total_submissions = db.Column(db.Integer, default=0, nullable=False)
    average_color = db.Column(db.JSON, nullable=True)
    # Running bicone centroid {x, y, z}; average_color is derived from it
    centroid = db.Column(db.JSON, nullable=True)
    # Welford accumulators {h|s|l: {mean, m2}}
    component_stats = db.Column(db.JSON, nullable=True)
    version = db.Column(db.Integer, nullable=False, default=0)

    submissions = db.relationship('ChallengeSubmission', backref='challenge', lazy='dynamic')

    def to_dict(self):
        return {
            'challengeId': self.challenge_id,
            'prompt': self.prompt,
            'status': self.status,
            'validFrom': _iso(self.valid_from),
            'validUntil': _iso(self.valid_until),
            'totalSubmissions': self.total_submissions or 0,
        }


class ChallengeSubmission(db.Model):
    __tablename__ = 'challenge_submission'
    # Composite key: one submission per user per challenge
    challenge_id = db.Column(db.String(10), db.ForeignKey('challenge.challenge_id'), primary_key=True)
    user_id = db.Column(db.String(64), primary_key=True, index=True)
    user_name = db.Column(db.String(50), nullable=False)
    color = db.Column(db.JSON, nullable=False)
    score = db.Column(db.Integer, nullable=False, index=True)
    distance_from_average = db.Column(db.Float, nullable=False)
    average_at_submission = db.Column(db.JSON, nullable=True)
    fingerprint = db.Column(db.String(128), nullable=True)
    submitted_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'challengeId': self.challenge_id,
            'userId': self.user_id,
            'userName': self.user_name,
            'color': self.color,
            'score': self.score,
            'distanceFromAverage': self.distance_from_average,
            'averageColorAtSubmissionTime': self.average_at_submission,
            'submittedAt': _iso(self.submitted_at),
        }


def _iso(value):
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
