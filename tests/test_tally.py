import unittest

from census.game import engine
from census.game.tally import question_winner, room_results, tally_votes, voting_progress

T0 = 1_700_000_000_000


def _review_room(*names, questions=1):
    room = engine.create_room("ABCDE", "Alex", 60, T0, host_id="host")
    for i, name in enumerate(names, start=1):
        room, _ = engine.join_room(room, name, T0 + i, player_id=f"p{i}")
    room = engine.start_question_phase(room, "host", T0 + 10)
    for i in range(questions):
        room = engine.submit_question(room, "host", f"q{i}", T0 + 11 + i)
    return engine.start_review_phase(room, "host", T0 + 100)


class TallyTests(unittest.TestCase):
    def test_highest_count_wins(self):
        room = _review_room("Sam", "Kim")
        room = engine.submit_vote(room, "host", "p2", 0, T0 + 200)
        room = engine.submit_vote(room, "p1", "p2", 0, T0 + 201)
        room = engine.submit_vote(room, "p2", "p1", 0, T0 + 202)

        tally = tally_votes(room, room.questions[0])
        self.assertEqual([(c.player_id, c.votes) for c in tally], [("p2", 2), ("p1", 1)])
        winner = question_winner(room, room.questions[0])
        self.assertEqual(winner.name, "Kim")

    def test_tie_goes_to_earliest_joined_player(self):
        room = _review_room("Sam", "Kim", "Lee")
        # Kim gets the first vote, Sam joined first
        room = engine.submit_vote(room, "host", "p2", 0, T0 + 200)
        room = engine.submit_vote(room, "p3", "p1", 0, T0 + 201)
        winner = question_winner(room, room.questions[0])
        self.assertEqual(winner.player_id, "p1")
        self.assertEqual(winner.votes, 1)

    def test_no_votes_no_winner(self):
        room = _review_room("Sam")
        self.assertIsNone(question_winner(room, room.questions[0]))
        self.assertEqual(tally_votes(room, room.questions[0]), [])

    def test_room_results(self):
        room = _review_room("Sam", questions=2)
        room = engine.submit_vote(room, "host", "p1", 0, T0 + 200)
        room = engine.submit_vote(room, "host", "p1", 1, T0 + 201)
        room = engine.submit_vote(room, "p1", "p1", 0, T0 + 202)
        room = engine.submit_vote(room, "p1", "host", 1, T0 + 203)
        self.assertEqual(room.phase_name, "complete")

        results = room_results(room)
        self.assertEqual(len(results), 2)
        self.assertEqual(results[0]["winnerId"], "p1")
        self.assertEqual(results[0]["winnerVotes"], 2)
        self.assertEqual(results[0]["totalVotes"], 2)
        # 1-1 tie: the host joined first
        self.assertEqual(results[1]["winnerId"], "host")
        self.assertEqual(results[1]["winnerName"], "Alex")

    def test_voting_progress(self):
        room = _review_room("Sam", "Kim")
        self.assertEqual(voting_progress(room), (0, 3))
        room = engine.submit_vote(room, "p1", "host", 0, T0 + 200)
        self.assertEqual(voting_progress(room), (1, 3))


if __name__ == "__main__":
    unittest.main()
