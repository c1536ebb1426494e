'''Reading and writing of posts and tally results in plain text formats.'''
