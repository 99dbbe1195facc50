# Card codes ("KS", "10H") to readable names ("King of Spades", "10 of Hearts")

RANKS = {
    "A": "Ace",
    "2": "2",
    "3": "3",
    "4": "4",
    "5": "5",
    "6": "6",
    "7": "7",
    "8": "8",
    "9": "9",
    "10": "10",
    "J": "Jack",
    "Q": "Queen",
    "K": "King",
}

SUITS = {
    "S": "Spades",
    "H": "Hearts",
    "D": "Diamonds",
    "C": "Clubs",
}


def card_name(code: str) -> str:
    if not code or len(code) < 2:
        return code

    if code.startswith("10"):
        rank, suit = "10", code[2:3]
    else:
        rank, suit = code[0], code[1]

    if not suit:
        return code

    return f"{RANKS.get(rank, rank)} of {SUITS.get(suit, suit)}"
