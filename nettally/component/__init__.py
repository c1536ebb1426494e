'''Registered building blocks shared by the ranked-vote counters.'''
