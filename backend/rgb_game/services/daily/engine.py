from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from rgb_game import db
from rgb_game.errors import Conflict, Expired, NotFound, Validation
from rgb_game.models import Challenge, ChallengePrompt, ChallengeSubmission, utcnow
from rgb_game.services.games import scoring
from . import stats as running

MAX_USER_NAME_LENGTH = 50

# Below this many prior submissions the crowd average means little, so
# everyone scores full marks.
FULL_MARKS_UNTIL = 2


def _aware(moment: Optional[datetime]) -> Optional[datetime]:
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def challenge_id_for(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).date().isoformat()


class DailyChallengeEngine:
    """One Challenge per UTC day, one Submission per (challenge, user).

    A submission is scored against the average of the submissions before
    it; the running average and Welford statistics are then folded forward
    in the same transaction as the submission insert.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow,
                 fallback_prompt: str = 'A color that makes you happy', retry_limit: int = 5):
        self.clock = clock
        self.fallback_prompt = fallback_prompt
        self.retry_limit = max(1, retry_limit)

    # ---- challenges ----

    def get_challenge(self, challenge_id: str) -> Challenge:
        challenge = db.session.get(Challenge, challenge_id)
        if challenge is None:
            raise NotFound('Challenge not found')
        db.session.refresh(challenge)
        return challenge

    def ensure_challenge(self, challenge_id: Optional[str] = None) -> Challenge:
        """Create the day's challenge if it does not exist yet. Safe to call repeatedly."""
        challenge_id = challenge_id or challenge_id_for(self.clock())
        existing = db.session.get(Challenge, challenge_id)
        if existing is not None:
            return existing
        try:
            day = date.fromisoformat(challenge_id)
        except ValueError:
            raise Validation('challengeId must be an ISO date')

        queued = db.session.get(ChallengePrompt, challenge_id)
        if queued is not None and queued.status == 'queued':
            prompt = queued.prompt
            queued.status = 'used'
            db.session.add(queued)
        else:
            prompt = self.fallback_prompt
            current_app.logger.warning(f"[daily-create] no prompt queued for {challenge_id}, using fallback")

        valid_from = datetime.combine(day, time.min, tzinfo=timezone.utc)
        challenge = Challenge(
            challenge_id=challenge_id,
            prompt=prompt,
            status='active',
            valid_from=valid_from,
            valid_until=valid_from + timedelta(days=1),
            created_at=self.clock(),
            total_submissions=0,
            version=0,
        )
        db.session.add(challenge)
        try:
            db.session.commit()
        except IntegrityError:
            # Created concurrently by the scheduled trigger or another request
            db.session.rollback()
            return self.get_challenge(challenge_id)
        current_app.logger.info(f"[daily-create] challenge={challenge_id} prompt={prompt!r}")
        return challenge

    def queue_prompt(self, prompt_id: str, prompt: str) -> ChallengePrompt:
        try:
            date.fromisoformat(prompt_id)
        except ValueError:
            raise Validation('Prompt date must be an ISO date')
        if not prompt or not prompt.strip():
            raise Validation('Prompt is required')
        entry = db.session.get(ChallengePrompt, prompt_id) or ChallengePrompt(prompt_id=prompt_id)
        entry.prompt = prompt.strip()
        entry.status = 'queued'
        db.session.add(entry)
        db.session.commit()
        return entry

    # ---- submissions ----

    def submit(self, challenge_id, user_id, user_name, color, fingerprint=None) -> dict:
        if not challenge_id or not isinstance(challenge_id, str):
            raise Validation('challengeId is required')
        if not user_id or not isinstance(user_id, str):
            raise Validation('userId is required')
        if not isinstance(user_name, str) or not 1 <= len(user_name.strip()) <= MAX_USER_NAME_LENGTH:
            raise Validation('userName must be 1-50 characters')
        if not scoring.is_valid_color(color):
            raise Validation('Invalid color values. H: 0-360, S: 0-100, L: 0-100')
        color = {'h': color['h'], 's': color['s'], 'l': color['l']}

        challenge = self.get_challenge(challenge_id)
        now = self.clock()
        if now > _aware(challenge.valid_until):
            raise Expired('Challenge has expired')
        if now < _aware(challenge.valid_from):
            raise Validation('Challenge is not open yet')
        if db.session.get(ChallengeSubmission, (challenge_id, user_id)) is not None:
            raise Conflict("You've already submitted today")

        for attempt in range(self.retry_limit):
            db.session.refresh(challenge)
            read_version = challenge.version
            prior_count = challenge.total_submissions or 0
            prior_average = challenge.average_color

            if prior_average is not None:
                dist = scoring.distance(color, prior_average)
            else:
                dist = 0.0
            if prior_count < FULL_MARKS_UNTIL or prior_average is None:
                score = 100
            else:
                score = scoring.score(prior_average, color)

            count = prior_count + 1
            component_stats = running.update_component_stats(challenge.component_stats, color, count)
            centroid = running.update_centroid(challenge.centroid, color, count)
            average = dict(color) if count == 1 else running.centroid_color(centroid)

            submission = ChallengeSubmission(
                challenge_id=challenge_id,
                user_id=user_id,
                user_name=user_name.strip(),
                color=color,
                score=score,
                distance_from_average=dist,
                average_at_submission=prior_average,
                fingerprint=fingerprint,
                submitted_at=now,
            )
            db.session.add(submission)
            try:
                db.session.flush()
            except IntegrityError:
                db.session.rollback()
                raise Conflict("You've already submitted today")

            outcome = db.session.execute(
                update(Challenge)
                .where(Challenge.challenge_id == challenge_id, Challenge.version == read_version)
                .values(
                    total_submissions=count,
                    average_color=average,
                    centroid=list(centroid),
                    component_stats=component_stats,
                    version=read_version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if outcome.rowcount == 1:
                db.session.commit()
                break
            # Statistics moved underneath us; drop the insert and rescore
            db.session.rollback()
            current_app.logger.info(f"[daily-submit] challenge={challenge_id} retry={attempt + 1}")
        else:
            raise Conflict('Challenge is busy, please retry')

        rank = self.rank_of(challenge_id, score)
        current_app.logger.info(
            f"[daily-submit] challenge={challenge_id} user={user_id} score={score} rank={rank} n={count}"
        )
        return {
            'challengeId': challenge_id,
            'score': score,
            'rank': rank,
            'distanceFromAverage': dist,
            'averageColor': prior_average,
            'submittedAt': submission.to_dict()['submittedAt'],
        }

    def rank_of(self, challenge_id: str, score: int) -> int:
        """1 + number of submissions with a strictly higher score."""
        higher = ChallengeSubmission.query.filter(
            ChallengeSubmission.challenge_id == challenge_id,
            ChallengeSubmission.score > score,
        ).count()
        return higher + 1

    # ---- reads ----

    def current(self, user_id: Optional[str] = None) -> dict:
        challenge = self.ensure_challenge()
        payload = challenge.to_dict()
        payload['userSubmission'] = None
        if user_id:
            mine = db.session.get(ChallengeSubmission, (challenge.challenge_id, user_id))
            if mine is not None:
                payload['userSubmission'] = {
                    'color': mine.color,
                    'score': mine.score,
                    'rank': self.rank_of(challenge.challenge_id, mine.score),
                    'submittedAt': mine.to_dict()['submittedAt'],
                }
        return payload

    def leaderboard(self, challenge_id: str, user_id: Optional[str] = None, limit: int = 100) -> dict:
        challenge = self.get_challenge(challenge_id)
        top = (
            ChallengeSubmission.query
            .filter_by(challenge_id=challenge_id)
            .order_by(ChallengeSubmission.score.desc(), ChallengeSubmission.submitted_at.asc())
            .limit(max(1, limit))
            .all()
        )
        top_scores = [
            {
                'rank': self.rank_of(challenge_id, item.score),
                'userName': item.user_name,
                'score': item.score,
                'submittedColor': item.color,
            }
            for item in top
        ]
        yours = None
        if user_id:
            mine = db.session.get(ChallengeSubmission, (challenge_id, user_id))
            if mine is not None:
                yours = {
                    'rank': self.rank_of(challenge_id, mine.score),
                    'score': mine.score,
                    'submittedColor': mine.color,
                    'distanceFromAverage': mine.distance_from_average,
                }
        return {
            'challengeId': challenge.challenge_id,
            'prompt': challenge.prompt,
            'status': challenge.status,
            'totalSubmissions': challenge.total_submissions or 0,
            'topScores': top_scores,
            'yourSubmission': yours,
        }

    def stats(self, challenge_id: str) -> dict:
        challenge = self.get_challenge(challenge_id)
        count = challenge.total_submissions or 0
        payload = {
            'totalSubmissions': count,
            'averageColor': challenge.average_color if count else None,
        }
        payload.update(running.summarise(challenge.component_stats, count))
        return payload

    def history(self, user_id: str, limit: int = 30) -> dict:
        if not user_id:
            raise Validation('userId is required')
        rows = (
            ChallengeSubmission.query
            .filter_by(user_id=user_id)
            .order_by(ChallengeSubmission.challenge_id.desc())
            .limit(max(1, limit))
            .all()
        )
        submissions = []
        for item in rows:
            challenge = db.session.get(Challenge, item.challenge_id)
            submissions.append({
                'challengeId': item.challenge_id,
                'prompt': challenge.prompt if challenge else 'Unknown',
                'submittedColor': item.color,
                'averageAtSubmission': item.average_at_submission,
                'score': item.score,
                'rank': self.rank_of(item.challenge_id, item.score),
                'totalSubmissions': (challenge.total_submissions or 0) if challenge else 0,
            })
        scores = [s['score'] for s in submissions]
        return {
            'userId': user_id,
            'submissions': submissions,
            'stats': {
                'totalPlayed': len(submissions),
                'averageScore': sum(scores) / len(scores) if scores else 0,
                'bestScore': max(scores) if scores else 0,
                'currentStreak': self.streak(s['challengeId'] for s in submissions),
            },
        }

    def streak(self, challenge_ids) -> int:
        """Consecutive days played, counting back from today (UTC)."""
        played = set(challenge_ids)
        day = self.clock().astimezone(timezone.utc).date()
        count = 0
        while day.isoformat() in played:
            count += 1
            day -= timedelta(days=1)
        return count
