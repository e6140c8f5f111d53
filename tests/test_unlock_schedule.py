"""
Subject unlock tests: MHT-CET restrictions in both delivery modes, unrestricted
streams, alias records and the per-owner LRU memo.
"""
import pytest

from fakes import MINUTE, SECOND, T0, make_exam, make_scheduled_exam
from entrance_cbt.models.timing_profile import StreamProfile
from entrance_cbt.services.unlock_schedule import (
    UnlockScheduleCache,
    compute_unlock_schedule,
    minutes_until_unlock,
)

RESTRICTED = ("Biology", "Mathematics", "Maths", "Math", "Bio", "Botany", "Zoology")


def mht_cet_scheduled(end_ms=T0 + 180 * MINUTE):
    return make_scheduled_exam(T0, end_ms, stream="MHT-CET", examSubject=["Physics", "Chemistry", "Maths"])


def mht_cet_practice(duration=180):
    return make_exam(stream="MHT-CET", examDurationMinutes=duration)


# ============================================================================
# Scheduled mode
# ============================================================================

class TestScheduledUnlock:

    def test_locked_before_last_90_minutes(self):
        exam = mht_cet_scheduled()
        schedule = compute_unlock_schedule(exam, T0, T0 + 30 * MINUTE)

        assert schedule.all_unlocked is False
        assert schedule.stream == StreamProfile.MHT_CET
        for subject in RESTRICTED:
            assert schedule.subjects[subject].is_locked is True
        assert schedule.subjects["Physics"].is_locked is False
        assert schedule.subjects["Chemistry"].remaining_unlock_millis == 0
        # unlock instant is end - 90 min = T0 + 90 min
        assert schedule.subjects["Biology"].remaining_unlock_millis == 60 * MINUTE

    def test_unlocks_at_exactly_90_minutes_remaining(self):
        exam = mht_cet_scheduled()
        just_before = compute_unlock_schedule(exam, T0, T0 + 90 * MINUTE - 1)
        exactly = compute_unlock_schedule(exam, T0, T0 + 90 * MINUTE)

        assert just_before.subjects["Mathematics"].is_locked is True
        assert just_before.subjects["Mathematics"].remaining_unlock_millis == 1
        assert exactly.subjects["Mathematics"].is_locked is False
        assert exactly.subjects["Mathematics"].remaining_unlock_millis == 0
        assert exactly.all_unlocked is True

    def test_unlocked_after_exam_end(self):
        schedule = compute_unlock_schedule(mht_cet_scheduled(), T0, T0 + 500 * MINUTE)
        assert schedule.all_unlocked is True

    def test_late_start_unlocks_immediately(self):
        exam = mht_cet_scheduled()
        student_start = T0 + 170 * MINUTE
        schedule = compute_unlock_schedule(exam, student_start, student_start)
        assert schedule.all_unlocked is True
        assert schedule.is_locked("Maths") is False

    def test_student_start_is_ignored(self):
        exam = mht_cet_scheduled()
        now = T0 + 60 * MINUTE
        early = compute_unlock_schedule(exam, T0, now)
        late = compute_unlock_schedule(exam, T0 + 59 * MINUTE, now)
        assert early == late


# ============================================================================
# Practice mode
# ============================================================================

class TestPracticeUnlock:

    @pytest.mark.parametrize("duration", [120, 180, 240])
    def test_unlocks_at_90_minutes_elapsed_regardless_of_duration(self, duration):
        exam = mht_cet_practice(duration)
        before = compute_unlock_schedule(exam, T0, T0 + 90 * MINUTE - SECOND)
        after = compute_unlock_schedule(exam, T0, T0 + 90 * MINUTE)

        assert before.is_locked("Biology") is True
        assert before.subjects["Biology"].remaining_unlock_millis == SECOND
        assert after.is_locked("Biology") is False
        assert after.all_unlocked is True

    def test_negative_elapsed_fails_locked(self):
        exam = mht_cet_practice()
        schedule = compute_unlock_schedule(exam, T0, T0 - 5 * MINUTE)
        assert schedule.is_locked("Mathematics") is True
        assert schedule.subjects["Mathematics"].remaining_unlock_millis == 90 * MINUTE

    def test_remaining_counts_down(self):
        exam = mht_cet_practice()
        schedule = compute_unlock_schedule(exam, T0, T0 + 30 * MINUTE)
        record = schedule.subjects["Zoology"]
        assert record.remaining_unlock_millis == 60 * MINUTE
        assert minutes_until_unlock(record) == 60


# ============================================================================
# Unrestricted streams and aliases
# ============================================================================

class TestUnrestrictedStreams:

    @pytest.mark.parametrize("stream", ["NEET", "JEE Main", "jee advanced", "neet-ug"])
    @pytest.mark.parametrize("offset_minutes", [-10, 0, 1, 89, 90, 179, 400])
    def test_always_unlocked(self, stream, offset_minutes):
        now = T0 + offset_minutes * MINUTE
        practice = make_exam(stream=stream)
        scheduled = make_scheduled_exam(T0, T0 + 180 * MINUTE, stream=stream)
        assert compute_unlock_schedule(practice, T0, now).all_unlocked is True
        assert compute_unlock_schedule(scheduled, T0, now).all_unlocked is True

    def test_unknown_stream_has_no_records(self):
        schedule = compute_unlock_schedule(make_exam(stream="Olympiad"), T0, T0)
        assert schedule.all_unlocked is True
        assert schedule.stream == StreamProfile.UNKNOWN
        assert schedule.subjects == {}
        assert schedule.is_locked("Biology") is False


class TestAliases:

    def test_alias_records_are_the_same(self):
        schedule = compute_unlock_schedule(mht_cet_practice(), T0, T0 + 10 * MINUTE)
        maths = schedule.subjects["Mathematics"]
        assert schedule.subjects["Maths"] == maths
        assert schedule.subjects["Math"] == maths
        assert schedule.subjects["Botany"] == schedule.subjects["Biology"]
        assert schedule.subjects["Maths"].subject_name == "Mathematics"

    def test_record_lookup_is_case_insensitive(self):
        schedule = compute_unlock_schedule(mht_cet_practice(), T0, T0)
        assert schedule.record_for("maths").subject_name == "Mathematics"
        assert schedule.record_for("History") is None

    def test_minutes_until_unlock_rounds_up(self):
        schedule = compute_unlock_schedule(mht_cet_practice(), T0, T0 + 30 * MINUTE + SECOND)
        assert minutes_until_unlock(schedule.subjects["Bio"]) == 60
        assert minutes_until_unlock(schedule.subjects["Physics"]) == 0


# ============================================================================
# Memo
# ============================================================================

class TestUnlockScheduleCache:

    def test_ticks_of_one_attempt_share_a_plan(self):
        cache = UnlockScheduleCache()
        exam = mht_cet_practice()
        first = cache.schedule_for(exam, T0, T0 + 10 * MINUTE)
        second = cache.schedule_for(exam, T0, T0 + 45 * MINUTE + 30 * SECOND)

        assert cache.misses == 1
        assert cache.hits == 1
        assert first == compute_unlock_schedule(exam, T0, T0 + 10 * MINUTE)
        assert second == compute_unlock_schedule(exam, T0, T0 + 45 * MINUTE + 30 * SECOND)

    def test_lock_flips_on_the_exact_millisecond(self):
        cache = UnlockScheduleCache()
        exam = mht_cet_practice()
        assert cache.schedule_for(exam, T0 + 1, T0 + 90 * MINUTE).is_locked("Maths") is True
        assert cache.schedule_for(exam, T0 + 1, T0 + 90 * MINUTE + 1).is_locked("Maths") is False
        assert cache.hits == 1

    def test_new_start_is_a_miss(self):
        cache = UnlockScheduleCache()
        exam = mht_cet_practice()
        cache.schedule_for(exam, T0, T0)
        cache.schedule_for(exam, T0 + MINUTE, T0 + MINUTE)
        assert cache.misses == 2
        assert len(cache) == 2

    def test_changed_end_time_is_a_miss(self):
        cache = UnlockScheduleCache()
        now = T0 + 60 * MINUTE
        cache.schedule_for(mht_cet_scheduled(), T0, now)
        moved = cache.schedule_for(mht_cet_scheduled(end_ms=T0 + 120 * MINUTE), T0, now)
        assert cache.misses == 2
        assert moved.all_unlocked is True

    def test_lru_eviction(self):
        cache = UnlockScheduleCache(maxsize=2)
        exam = mht_cet_practice()
        cache.schedule_for(exam, T0, T0)
        cache.schedule_for(exam, T0 + 1, T0)
        cache.schedule_for(exam, T0, T0)      # refresh the first plan
        cache.schedule_for(exam, T0 + 2, T0)  # evicts the second
        assert len(cache) == 2
        cache.schedule_for(exam, T0, T0)
        assert cache.hits == 2

    def test_clear_and_isolation(self):
        exam = mht_cet_practice()
        a, b = UnlockScheduleCache(), UnlockScheduleCache()
        a.schedule_for(exam, T0, T0)
        assert len(b) == 0
        a.clear()
        assert len(a) == 0
        assert a.hits == a.misses == 0
