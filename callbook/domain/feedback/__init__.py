"""Customer feedback: complaints after a missed call and verified reviews"""
